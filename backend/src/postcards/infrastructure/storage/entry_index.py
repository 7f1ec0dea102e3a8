"""Optional in-memory index over store scans.

Holds the result of the last full scan keyed by reference. Any write through
the store invalidates the whole index, so the next read rescans. The index is
a cache only: the metadata documents stay authoritative.
"""

import logging
from typing import Dict, List, Optional

from ...domain.entries.ports.entry_store_port import StoredEntry

logger = logging.getLogger(__name__)


class EntryIndex:
    """Map from reference to the stored entry of the last scan."""

    def __init__(self):
        self._entries: Optional[List[StoredEntry]] = None
        self._by_ref: Dict[str, StoredEntry] = {}

    @property
    def is_warm(self) -> bool:
        return self._entries is not None

    def populate(self, entries: List[StoredEntry]) -> None:
        self._entries = list(entries)
        self._by_ref = {}
        for stored in self._entries:
            # First occurrence wins, matching scan-based lookup
            self._by_ref.setdefault(stored.entry.ref, stored)
        logger.debug(f"Entry index populated with {len(self._entries)} entries")

    def entries(self) -> List[StoredEntry]:
        return list(self._entries or [])

    def lookup(self, ref: str) -> Optional[StoredEntry]:
        return self._by_ref.get(ref)

    def invalidate(self) -> None:
        self._entries = None
        self._by_ref = {}
