"""Query engine: filtering, ordering and pagination over store scans

Filters combine with AND semantics:
- status equality (None / "all" matches everything)
- case-insensitive faculty equality
- case-insensitive substring search over ref, full name, email, location,
  term and message
- inclusive receivedAt bounds

Results are ordered by receivedAt descending; ties keep scan order. Every
call re-reads the store (or its optional in-memory index).
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from .entry_status import EntryStatus
from .models import Entry
from .ports.entry_store_port import EntryStorePort, StoredEntry
from .timestamps import ensure_utc


DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100

# Statuses that may appear on the public "recent postcards" feed
PUBLIC_STATUSES = (EntryStatus.APPROVED, EntryStatus.WINNER)


@dataclass
class EntryFilter:
    """Listing and export filter

    Attributes:
        query: Search term matched against the searchable fields
        faculty: Exact faculty name (case-insensitive)
        status: Concrete status, or None for all statuses
        received_from: Inclusive lower bound on receivedAt
        received_to: Inclusive upper bound on receivedAt
    """
    query: Optional[str] = None
    faculty: Optional[str] = None
    status: Optional[EntryStatus] = None
    received_from: Optional[datetime] = None
    received_to: Optional[datetime] = None

    def __post_init__(self):
        self.query = (self.query or "").strip() or None
        self.faculty = (self.faculty or "").strip() or None
        if self.received_from is not None:
            self.received_from = ensure_utc(self.received_from)
        if self.received_to is not None:
            self.received_to = ensure_utc(self.received_to)


@dataclass
class Page:
    """One page of a filtered result set"""
    items: List[Entry] = field(default_factory=list)
    total: int = 0
    page: int = 1
    pages: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


def searchable_values(entry: Entry) -> List[str]:
    fields = entry.fields
    values = [entry.ref, fields.full_name, fields.email, fields.location, fields.term, fields.message]
    return [value for value in values if value]


def matches_filter(entry: Entry, entry_filter: EntryFilter) -> bool:
    """Check one entry against every active predicate"""
    if entry_filter.status is not None and entry.status != entry_filter.status:
        return False

    if entry_filter.faculty:
        if (entry.fields.faculty or "").lower() != entry_filter.faculty.lower():
            return False

    if entry_filter.query:
        needle = entry_filter.query.lower()
        if not any(needle in value.lower() for value in searchable_values(entry)):
            return False

    received_at = ensure_utc(entry.received_at)
    if entry_filter.received_from is not None and received_at < entry_filter.received_from:
        return False
    if entry_filter.received_to is not None and received_at > entry_filter.received_to:
        return False

    return True


def clamp_page_size(page_size: Optional[int]) -> int:
    if page_size is None:
        return DEFAULT_PAGE_SIZE
    return min(MAX_PAGE_SIZE, max(1, int(page_size)))


def paginate(entries: Sequence[Entry], page: int = 1, page_size: Optional[int] = DEFAULT_PAGE_SIZE) -> Page:
    """Slice a result set into 1-indexed pages

    Page size is clamped to [1, 100]. There is always at least one page,
    even for an empty result set.

    Example:
        >>> paginate([], page=1, page_size=10).pages
        1
    """
    size = clamp_page_size(page_size)
    page = max(1, int(page or 1))
    total = len(entries)
    pages = max(1, math.ceil(total / size))
    offset = (page - 1) * size
    return Page(
        items=list(entries[offset:offset + size]),
        total=total,
        page=page,
        pages=pages,
        page_size=size,
    )


class EntryQueryService:
    """Filtered retrieval on top of an entry store.

    Example:
        queries = EntryQueryService(store)
        approved = await queries.list(EntryFilter(status=EntryStatus.APPROVED))
        first_page = paginate(approved, page=1, page_size=25)
    """

    def __init__(self, store: EntryStorePort):
        self.store = store

    async def list_stored(self, entry_filter: Optional[EntryFilter] = None) -> List[StoredEntry]:
        entry_filter = entry_filter or EntryFilter()
        scanned = await self.store.scan()
        matching = [stored for stored in scanned if matches_filter(stored.entry, entry_filter)]
        # sorted() is stable, so equal receivedAt values keep scan order
        return sorted(matching, key=lambda stored: ensure_utc(stored.entry.received_at), reverse=True)

    async def list(self, entry_filter: Optional[EntryFilter] = None) -> List[Entry]:
        """Return every entry matching the filter, most recent first"""
        return [stored.entry for stored in await self.list_stored(entry_filter)]

    async def page(
        self,
        entry_filter: Optional[EntryFilter] = None,
        page: int = 1,
        page_size: Optional[int] = DEFAULT_PAGE_SIZE,
    ) -> Page:
        return paginate(await self.list(entry_filter), page=page, page_size=page_size)

    async def find(self, ref: str) -> Entry:
        return await self.store.find(ref)

    async def recent(self, limit: int) -> List[Entry]:
        """Most recent entries that may be shown publicly"""
        entries = await self.list()
        public = [entry for entry in entries if entry.status in PUBLIC_STATUSES]
        return public[:max(0, limit)]
