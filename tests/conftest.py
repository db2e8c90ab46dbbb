"""
Shared fixtures for the Cobalt Depot test suite.
"""

from pathlib import Path
from typing import AsyncIterator, Callable

import pytest

from cobalt_depot.infrastructure.config.models import (
    ApplicationConfig, CatalogConfig, LoggingConfig, StorageConfig,
    SweeperConfig, UploadConfig
)


@pytest.fixture
def chunks() -> Callable[..., AsyncIterator[bytes]]:
    """Build an async byte stream from the given parts."""
    def _make(*parts: bytes) -> AsyncIterator[bytes]:
        async def _gen() -> AsyncIterator[bytes]:
            for part in parts:
                yield part
        return _gen()
    return _make


@pytest.fixture
def app_config(tmp_path: Path) -> ApplicationConfig:
    """Configuration with every path inside a temporary directory."""
    return ApplicationConfig(
        environment="testing",
        upload=UploadConfig(temp_directory=str(tmp_path / "temp"), max_size=1024),
        storage=StorageConfig(local_directory=str(tmp_path / "uploads")),
        catalog=CatalogConfig(path=str(tmp_path / "file-metadata.json")),
        sweeper=SweeperConfig(enabled=False),
        logging=LoggingConfig(
            log_directory=str(tmp_path / "logs"),
            console_enabled=False,
            file_enabled=False,
            intercept_stdlib=False,
        ),
    )
