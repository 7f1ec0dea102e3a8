"""Storage configuration for the file-system entry store.

Layout under the root:

    <root>/<YYYYMMDD>/<REF>/meta.json
    <root>/<YYYYMMDD>/<REF>/<stored file names...>
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ...config import Settings, get_settings


@dataclass
class StorageConfig:
    """Configuration for the entry store.

    Attributes:
        root: Store root directory (resolved to an absolute path)
        index_enabled: Keep an in-memory index of scan results between writes
    """
    root: Path
    index_enabled: bool = False


def load_storage_config(settings: Optional[Settings] = None) -> StorageConfig:
    """Build the storage configuration from application settings.

    Raises:
        ValueError: If the configuration is invalid
    """
    settings = settings or get_settings()
    config = StorageConfig(
        root=Path(settings.UPLOAD_DIR).expanduser().resolve(),
        index_enabled=settings.ENTRY_INDEX_ENABLED,
    )
    validate_storage_config(config)
    return config


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Raises:
        ValueError: If the root is empty or points at a regular file
    """
    if not str(config.root).strip():
        raise ValueError("Storage root (UPLOAD_DIR) is required")

    if config.root.exists() and not config.root.is_dir():
        raise ValueError(f"Storage root is not a directory: {config.root}")
