"""
S3-compatible object store backend.

Works against AWS S3 and S3-compatible stores (R2, MinIO). boto3 is
synchronous, so every call runs on a worker thread. The locator is the
object key.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config.models import S3Config
from ...core.exceptions import StorageError
from ...core.interfaces.storage import BlobInfo, BlobStream, IStorageBackend

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_S3_ERRORS = (BotoCoreError, ClientError, S3UploadFailedError)


def _is_missing(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _MISSING_CODES


class S3StorageBackend(IStorageBackend):
    """Storage backend writing promoted blobs to an S3 bucket."""

    def __init__(self, config: S3Config, client: Optional[Any] = None) -> None:
        if not config.bucket:
            raise ValueError("S3 storage backend requires a bucket name")
        self._config = config
        self._client = client
        self._running = False

    @property
    def name(self) -> str:
        return "S3StorageBackend"

    @property
    def kind(self) -> str:
        return "s3"

    @property
    def bucket(self) -> str:
        return self._config.bucket  # type: ignore[return-value]

    def _create_client(self) -> Any:
        return boto3.client(
            "s3",
            endpoint_url=self._config.endpoint_url,
            region_name=self._config.region,
            aws_access_key_id=self._config.access_key_id,
            aws_secret_access_key=self._config.secret_access_key,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": self._config.addressing_style},
                retries={"max_attempts": self._config.max_attempts, "mode": "standard"},
            ),
        )

    async def start(self) -> None:
        if self._running:
            return
        if self._client is None:
            self._client = self._create_client()

        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=self.bucket)
        except _S3_ERRORS as e:
            raise StorageError(f"Cannot access bucket {self.bucket!r}", detail=str(e))

        self._running = True
        logger.info(
            f"S3 storage ready: bucket={self.bucket} prefix={self._config.prefix!r} "
            f"endpoint={self._config.endpoint_url or 'default'}"
        )

    async def stop(self) -> None:
        self._running = False

    async def check_health(self) -> Dict[str, Any]:
        reachable = False
        error = None
        if self._client is not None:
            try:
                await asyncio.to_thread(self._client.head_bucket, Bucket=self.bucket)
                reachable = True
            except _S3_ERRORS as e:
                error = str(e)

        return {
            "healthy": self._running and reachable,
            "status": "running" if self._running else "stopped",
            "details": {
                "backend": self.kind,
                "bucket": self.bucket,
                "prefix": self._config.prefix,
                "reachable": reachable,
                "last_error": error,
            }
        }

    def key_for(self, name: str) -> str:
        return f"{self._config.prefix}{name}"

    async def promote(self, source: Path, name: str, content_type: str) -> str:
        key = self.key_for(name)
        try:
            # upload_file switches to multipart for large blobs
            await asyncio.to_thread(
                self._client.upload_file,
                str(source),
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (*_S3_ERRORS, OSError) as e:
            raise StorageError(f"Failed to upload {source.name} to s3://{self.bucket}/{key}", detail=str(e))

        logger.debug(f"Promoted {source.name} to s3://{self.bucket}/{key}")
        return key

    async def open(self, locator: str, chunk_size: int = 1024 * 1024) -> BlobStream:
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=self.bucket, Key=locator
            )
        except _S3_ERRORS as e:
            raise StorageError(f"Cannot open s3://{self.bucket}/{locator}", detail=str(e))

        return BlobStream(
            size=int(response["ContentLength"]),
            chunks=self._iter_body(response["Body"], chunk_size),
        )

    async def _iter_body(self, body: Any, chunk_size: int) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = await asyncio.to_thread(body.read, chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            body.close()

    async def stat(self, locator: str) -> Optional[BlobInfo]:
        try:
            head = await asyncio.to_thread(
                self._client.head_object, Bucket=self.bucket, Key=locator
            )
        except ClientError as e:
            if _is_missing(e):
                return None
            raise StorageError(f"Cannot stat s3://{self.bucket}/{locator}", detail=str(e))
        except BotoCoreError as e:
            raise StorageError(f"Cannot stat s3://{self.bucket}/{locator}", detail=str(e))

        modified = head.get("LastModified")
        return BlobInfo(
            name=locator,
            size=int(head.get("ContentLength", 0)),
            modified_at=modified.timestamp() if modified else 0.0,
        )

    async def delete(self, locator: str) -> bool:
        # DeleteObject succeeds for missing keys, so look first
        if await self.stat(locator) is None:
            return False
        try:
            await asyncio.to_thread(
                self._client.delete_object, Bucket=self.bucket, Key=locator
            )
        except _S3_ERRORS as e:
            raise StorageError(f"Failed to delete s3://{self.bucket}/{locator}", detail=str(e))
        return True

    async def list_blobs(self) -> List[BlobInfo]:
        try:
            return await asyncio.to_thread(self._list_sync)
        except _S3_ERRORS as e:
            raise StorageError(f"Failed to list s3://{self.bucket}/{self._config.prefix}", detail=str(e))

    def _list_sync(self) -> List[BlobInfo]:
        blobs = []
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=self._config.prefix):
            for item in page.get("Contents", []):
                blobs.append(BlobInfo(
                    name=item["Key"],
                    size=int(item.get("Size", 0)),
                    modified_at=item["LastModified"].timestamp(),
                ))
        return blobs
