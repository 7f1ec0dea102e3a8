from .entry_index import EntryIndex
from .filesystem_entry_store import FilesystemEntryStore
from .storage_config import StorageConfig, load_storage_config, validate_storage_config

__all__ = [
    "EntryIndex",
    "FilesystemEntryStore",
    "StorageConfig",
    "load_storage_config",
    "validate_storage_config",
]
