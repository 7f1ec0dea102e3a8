"""Entry Store Port - Domain interface for entry persistence.

Adapters own the storage layout and must honour these rules:
- The stored metadata document is the only source of truth; no separate
  index is authoritative.
- An entry's files live inside that entry's own storage location and are
  only served if listed in its metadata.
- Failures surface as NotFound / StoreUnavailable, never raw I/O errors.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, List, Optional, Sequence

import aiofiles

from ..entry_status import EntryStatus
from ..models import Entry, EntryFields, UploadedFile


DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class StoredEntry:
    """An entry together with the location it was read from."""
    entry: Entry
    location: Path


@dataclass(frozen=True)
class EntryFile:
    """A readable file belonging to an entry.

    Attributes:
        name: Stored file name as recorded in the metadata document
        size_bytes: File size at resolution time
        location: Resolved path; internal, never returned to callers
    """
    name: str
    size_bytes: int
    location: Path

    async def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Stream the file contents without loading it whole."""
        async with aiofiles.open(self.location, "rb") as handle:
            while True:
                chunk = await handle.read(chunk_size)
                if not chunk:
                    break
                yield chunk


class EntryStorePort(ABC):
    """Port interface for the entry record store.

    Example Usage:
        store = FilesystemEntryStore(root=Path("./uploads"))

        entry = await store.create(
            fields=fields,
            consent=True,
            postcard=UploadedFile("karte.pdf", pdf_bytes, "application/pdf"),
            images=[],
            received_at=utc_now(),
        )
        same = await store.find(entry.ref)
    """

    @abstractmethod
    async def create(
        self,
        fields: EntryFields,
        consent: bool,
        postcard: UploadedFile,
        images: Sequence[UploadedFile],
        received_at: datetime,
        ref: Optional[str] = None,
    ) -> Entry:
        """Persist a new entry with status "received".

        Args:
            fields: Validated submitter attributes
            consent: Consent flag captured at submission
            postcard: Primary document (already content-validated)
            images: 0-5 images (already content-validated)
            received_at: Wall-clock time of submission
            ref: Explicit reference; allocated when omitted

        Returns:
            Entry: The persisted entry

        Raises:
            AllocationExhausted: If no free reference could be found
            ReferenceCollision: If an explicit ref is already taken
            StoreUnavailable: If writing fails
        """
        pass

    @abstractmethod
    async def find(self, ref: str) -> Entry:
        """Look up an entry by reference.

        Raises:
            NotFound: If no entry carries this reference
        """
        pass

    @abstractmethod
    async def exists(self, ref: str) -> bool:
        pass

    @abstractmethod
    async def update_status(self, ref: str, new_status: EntryStatus) -> Entry:
        """Apply a lifecycle transition and overwrite the metadata document.

        Last write wins; there is no compare-and-swap.

        Raises:
            NotFound: If no entry carries this reference
        """
        pass

    @abstractmethod
    async def read_file(self, ref: str, file_name: str) -> EntryFile:
        """Resolve one of the entry's recorded files for reading.

        Names not recorded in the entry's metadata are rejected before the
        file system is touched.

        Raises:
            NotFound: Unknown ref, unauthorized name, or file missing on disk
        """
        pass

    @abstractmethod
    async def scan(self) -> List[StoredEntry]:
        """Enumerate every readable entry in scan order.

        Entries whose metadata cannot be read or parsed are skipped.

        Raises:
            StoreUnavailable: If the store itself cannot be enumerated
        """
        pass
