from .entry_store_port import EntryFile, EntryStorePort, StoredEntry

__all__ = ["EntryFile", "EntryStorePort", "StoredEntry"]
