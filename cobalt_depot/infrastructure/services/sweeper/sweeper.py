"""
Temp sweeper service.

Reclaims disk held by abandoned uploads and reconciles the permanent
namespace against the catalog. One pass runs at start, then one every
``interval`` seconds on a background task.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from ....core.domain.models import SweepReport
from ....core.exceptions import StorageError
from ....core.interfaces.assets import ITempSweeper
from ....core.interfaces.catalog import IMetadataCatalog
from ....core.interfaces.storage import IStorageBackend, ITempArea
from ....core.interfaces.upload import IUploadSessionManager
from ...config.models import SweeperConfig

logger = logging.getLogger(__name__)


class TempSweeper(ITempSweeper):
    """Periodic cleanup of expired sessions, stale temp blobs and orphaned blobs."""

    def __init__(
        self,
        upload_manager: IUploadSessionManager,
        temp_area: ITempArea,
        storage: IStorageBackend,
        catalog: IMetadataCatalog,
        config: Optional[SweeperConfig] = None
    ):
        self._uploads = upload_manager
        self._temp = temp_area
        self._storage = storage
        self._catalog = catalog
        self._config = config or SweeperConfig()

        self._worker_task: Optional[asyncio.Task[None]] = None
        self._stop_event = asyncio.Event()
        self._running = False
        self._last_report: Optional[SweepReport] = None
        self._passes = 0

    @property
    def name(self) -> str:
        return "TempSweeper"

    @property
    def last_report(self) -> Optional[SweepReport]:
        return self._last_report

    async def start(self) -> None:
        """Run an initial pass and start the periodic worker."""
        if self._running:
            return
        self._running = True

        if not self._config.enabled:
            logger.info("Temp sweeper disabled")
            return

        await self.sweep_once()

        self._stop_event.clear()
        self._worker_task = asyncio.create_task(self._sweep_worker())
        logger.info(f"Temp sweeper started (interval {self._config.interval}s, "
                    f"retention {self._config.retention}s)")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._stop_event.set()

        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        self._worker_task = None

        logger.info("Temp sweeper stopped")

    async def check_health(self) -> Dict[str, Any]:
        worker_alive = self._worker_task is not None and not self._worker_task.done()
        return {
            "healthy": self._running and (worker_alive or not self._config.enabled),
            "status": "running" if self._running else "stopped",
            "details": {
                "enabled": self._config.enabled,
                "interval": self._config.interval,
                "retention": self._config.retention,
                "passes": self._passes,
                "last_report": self._last_report.to_dict() if self._last_report else None,
            }
        }

    async def _sweep_worker(self) -> None:
        """Worker task running a pass every interval until stopped."""
        while self._running:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._config.interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"Temp sweeper pass failed: {e}")

    async def sweep_once(self, now: Optional[float] = None) -> SweepReport:
        """Run one full pass and return what it did."""
        now = now if now is not None else time.time()
        report = SweepReport()

        report.expired_sessions = await self._uploads.expire_idle_sessions(
            self._config.retention, now=now
        )
        await self._sweep_temp(report, now)
        if self._config.reconcile:
            await self._reconcile(report, now)

        report.finished_at = time.time()
        self._last_report = report
        self._passes += 1

        if report.expired_sessions or report.temp_blobs_removed or report.orphaned_blobs_removed:
            logger.info(
                f"Sweep finished: {report.expired_sessions} sessions expired, "
                f"{report.temp_blobs_removed} temp blobs and "
                f"{report.orphaned_blobs_removed} orphaned blobs removed")
        else:
            logger.debug("Sweep finished: nothing to reclaim")
        return report

    async def _sweep_temp(self, report: SweepReport, now: float) -> None:
        # Read after expiry so sessions dropped above are no longer protected
        active = self._uploads.active_session_ids()

        for blob in await self._temp.list_blobs():
            if blob.name in active:
                continue
            if now - blob.modified_at <= self._config.retention:
                continue
            try:
                if await self._temp.delete(blob.name):
                    report.temp_blobs_removed += 1
                    logger.debug(f"Removed stale temp blob {blob.name}")
            except StorageError as e:
                report.errors += 1
                logger.warning(f"Failed to remove temp blob {blob.name}: {e.message}")

    async def _reconcile(self, report: SweepReport, now: float) -> None:
        try:
            blobs = await self._storage.list_blobs()
        except StorageError as e:
            report.errors += 1
            logger.warning(f"Reconciliation skipped, cannot list {self._storage.kind} storage: {e.message}")
            return

        # Snapshot alongside the listing so records added during deletes are not reported
        records = self._catalog.list()
        referenced = self._catalog.locators()
        present = {blob.name for blob in blobs}
        grace = self._config.effective_orphan_grace

        for blob in blobs:
            if blob.name in referenced or now - blob.modified_at <= grace:
                continue
            try:
                if await self._storage.delete(blob.name):
                    report.orphaned_blobs_removed += 1
                    logger.warning(f"Removed orphaned blob {blob.name} ({blob.size} bytes)")
            except StorageError as e:
                report.errors += 1
                logger.warning(f"Failed to remove orphaned blob {blob.name}: {e.message}")

        for record in records:
            if record.storage_locator not in present:
                report.missing_blobs += 1
                logger.error(
                    f"Consistency violation: {record.id} ({record.original_name}) "
                    f"references missing blob {record.storage_locator}")
