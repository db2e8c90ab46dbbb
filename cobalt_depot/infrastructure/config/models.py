"""
Configuration models and data structures.

This module defines the configuration models used throughout the application,
providing type safety and validation for configuration values.
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


# 25 GiB, the limit advertised through Tus-Max-Size
DEFAULT_MAX_UPLOAD_SIZE = 26843545600

STORAGE_BACKENDS = ("local", "s3")


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 3011
    api_prefix: str = "/api"
    access_log: bool = False


@dataclass
class UploadConfig:
    """Resumable upload protocol configuration."""
    max_size: int = DEFAULT_MAX_UPLOAD_SIZE
    temp_directory: str = "temp"
    chunk_timeout: Optional[float] = None
    tus_version: str = "1.0.0"


@dataclass
class S3Config:
    """S3-compatible object store settings."""
    bucket: Optional[str] = None
    prefix: str = "uploads/"
    endpoint_url: Optional[str] = None
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    addressing_style: str = "path"
    max_attempts: int = 3


@dataclass
class StorageConfig:
    """Permanent storage backend configuration."""
    backend: str = "local"
    local_directory: str = "uploads"
    download_chunk_size: int = 1024 * 1024
    s3: S3Config = field(default_factory=S3Config)


@dataclass
class CatalogConfig:
    """Metadata catalog configuration."""
    path: str = "file-metadata.json"


@dataclass
class SweeperConfig:
    """Temp sweeper configuration."""
    enabled: bool = True
    interval: float = 3600.0
    retention: float = 86400.0
    orphan_grace: Optional[float] = None
    reconcile: bool = True

    @property
    def effective_orphan_grace(self) -> float:
        return self.orphan_grace if self.orphan_grace is not None else self.retention


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    max_file_size: str = "10 MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = True
    intercept_stdlib: bool = True


@dataclass
class SecurityConfig:
    """Cross-origin and response header policy."""
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    security_headers: bool = True


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    # Basic application settings
    name: str = "Cobalt Depot"
    version: str = "0.1.0"
    debug: bool = False
    environment: str = "production"

    # Component configurations
    server: ServerConfig = field(default_factory=ServerConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    sweeper: SweeperConfig = field(default_factory=SweeperConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)

    # Additional settings
    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_server()
        self._validate_upload()
        self._validate_storage()
        self._validate_sweeper()
        self._validate_layout()

    def _validate_server(self) -> None:
        if not (1 <= self.server.port <= 65535):
            raise ValueError(
                f"Server port must be between 1 and 65535, got {self.server.port}")
        prefix = self.server.api_prefix
        if prefix and (not prefix.startswith("/") or prefix.endswith("/")):
            raise ValueError(
                f"API prefix must start with '/' and not end with '/', got {prefix!r}")

    def _validate_upload(self) -> None:
        if self.upload.max_size <= 0:
            raise ValueError(
                f"Maximum upload size must be positive, got {self.upload.max_size}")
        if self.upload.chunk_timeout is not None and self.upload.chunk_timeout <= 0:
            raise ValueError(
                f"Chunk timeout must be positive, got {self.upload.chunk_timeout}")
        if not self.upload.temp_directory:
            raise ValueError("Temp directory must be set")

    def _validate_storage(self) -> None:
        if self.storage.backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend {self.storage.backend!r}, "
                f"expected one of {', '.join(STORAGE_BACKENDS)}")
        if self.storage.backend == "s3" and not self.storage.s3.bucket:
            raise ValueError("S3 storage backend requires storage.s3.bucket")
        if self.storage.download_chunk_size <= 0:
            raise ValueError("Download chunk size must be positive")

    def _validate_sweeper(self) -> None:
        timeouts = [
            ("Sweeper interval", self.sweeper.interval),
            ("Sweeper retention", self.sweeper.retention),
        ]
        if self.sweeper.orphan_grace is not None:
            timeouts.append(("Sweeper orphan grace", self.sweeper.orphan_grace))

        for name, value in timeouts:
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    def _validate_layout(self) -> None:
        """Reject layouts where the sweeper could reach assets or the catalog."""
        temp_dir = Path(self.upload.temp_directory).expanduser().resolve()
        catalog_path = Path(self.catalog.path).expanduser().resolve()
        staging_path = catalog_path.with_name(catalog_path.name + ".tmp")

        owned = [("Upload temp directory", temp_dir)]
        if self.storage.backend == "local":
            local_dir = Path(self.storage.local_directory).expanduser().resolve()
            if _overlaps(temp_dir, local_dir):
                raise ValueError(
                    f"Upload temp directory {temp_dir} and local storage directory "
                    f"{local_dir} must not be the same or nested")
            owned.append(("Local storage directory", local_dir))

        for name, directory in owned:
            for path in (catalog_path, staging_path):
                if directory == path or directory in path.parents:
                    raise ValueError(f"Catalog file {path} must not be inside {name.lower()} {directory}")

        if (self.storage.backend == "s3" and not self.storage.s3.prefix
                and self.sweeper.reconcile):
            raise ValueError("S3 prefix must not be empty while sweeper.reconcile is enabled")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        storage_data = dict(data.get('storage', {}))
        s3_config = S3Config(**storage_data.pop('s3', {}))

        return cls(
            name=data.get('name', 'Cobalt Depot'),
            version=data.get('version', '0.1.0'),
            debug=data.get('debug', False),
            environment=data.get('environment', 'production'),
            server=ServerConfig(**data.get('server', {})),
            upload=UploadConfig(**data.get('upload', {})),
            storage=StorageConfig(s3=s3_config, **storage_data),
            catalog=CatalogConfig(**data.get('catalog', {})),
            sweeper=SweeperConfig(**data.get('sweeper', {})),
            logging=LoggingConfig(**data.get('logging', {})),
            security=SecurityConfig(**data.get('security', {})),
            config_file_path=data.get('config_file_path'),
        )


def _overlaps(first: Path, second: Path) -> bool:
    return first == second or first in second.parents or second in first.parents
