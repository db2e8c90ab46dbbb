"""
Asset service and maintenance interfaces.
"""

from abc import abstractmethod
from typing import List, Optional, Tuple

from ..domain.models import AssetRecord, AssetSummary, SweepReport
from .lifecycle import IComponent
from .storage import BlobStream


class IAssetService(IComponent):
    """List, download and delete finalized assets."""

    @abstractmethod
    def list_assets(self) -> List[AssetSummary]:
        pass

    @abstractmethod
    async def download(self, asset_id: str) -> Tuple[AssetRecord, BlobStream]:
        """
        Raises:
            AssetNotFound: Unknown id
            ConsistencyViolation: Catalogued but the blob is missing
        """
        pass

    @abstractmethod
    async def delete(self, asset_id: str) -> AssetRecord:
        pass


class ITempSweeper(IComponent):
    """Periodic reclamation of abandoned upload data."""

    @abstractmethod
    async def sweep_once(self, now: Optional[float] = None) -> SweepReport:
        pass

    @property
    @abstractmethod
    def last_report(self) -> Optional[SweepReport]:
        pass
