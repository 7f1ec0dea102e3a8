"""File-system Entry Store - Implementation of EntryStorePort using aiofiles.

One directory per calendar day, one sub-directory per entry, one meta.json
per entry:

    <root>/20250301/9F03A1C2/meta.json
    <root>/20250301/9F03A1C2/Postkarte_1740821400.pdf
    <root>/20250301/9F03A1C2/Bild_1_1740821401.jpg

Directory paths derive only from receivedAt and the reference, never from
user input. Creating the entry directory is exclusive, so two submissions
that draw the same reference on the same day cannot both succeed.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import json
import logging
import stat
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import aiofiles
import aiofiles.os

from ...domain.entries.entry_status import EntryStatus
from ...domain.entries.errors import (
    AllocationExhausted,
    NotFound,
    ReferenceCollision,
    StoreUnavailable,
)
from ...domain.entries.lifecycle import LifecycleManager
from ...domain.entries.models import Entry, EntryFields, EntryFiles, UploadedFile
from ...domain.entries.ports.entry_store_port import EntryFile, EntryStorePort, StoredEntry
from ...domain.entries.reference import MAX_ALLOCATION_ATTEMPTS, ReferenceAllocator
from ...domain.entries.timestamps import date_segment, truncate_to_milliseconds
from ...domain.entries.validation import stored_names_for
from ...observability.metrics import (
    status_transitions_total,
    store_scan_duration_seconds,
    store_scan_skipped_total,
)
from .entry_index import EntryIndex
from .storage_config import StorageConfig

logger = logging.getLogger(__name__)

META_FILE_NAME = "meta.json"
META_TEMP_NAME = ".meta.json.tmp"


class FilesystemEntryStore(EntryStorePort):
    """Entry store backed by a directory tree.

    Every lookup and listing re-derives state from the metadata documents.
    With an EntryIndex attached, scan results are cached until the next
    write through this store.

    Example:
        store = FilesystemEntryStore.from_config(load_storage_config())
        entry = await store.create(fields, True, postcard, images, utc_now())
        updated = await store.update_status(entry.ref, EntryStatus.APPROVED)
    """

    def __init__(
        self,
        root: Path,
        lifecycle: Optional[LifecycleManager] = None,
        allocator: Optional[ReferenceAllocator] = None,
        index: Optional[EntryIndex] = None,
        max_create_attempts: int = MAX_ALLOCATION_ATTEMPTS,
    ):
        self.root = Path(root)
        self.lifecycle = lifecycle or LifecycleManager()
        self.allocator = allocator or ReferenceAllocator(self.exists)
        self.index = index
        self.max_create_attempts = max_create_attempts

    @classmethod
    def from_config(cls, config: StorageConfig) -> "FilesystemEntryStore":
        store = cls(root=config.root, index=EntryIndex() if config.index_enabled else None)
        logger.info(
            f"Initialized entry store: root={config.root}, index_enabled={config.index_enabled}"
        )
        return store

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    async def create(
        self,
        fields: EntryFields,
        consent: bool,
        postcard: UploadedFile,
        images: Sequence[UploadedFile],
        received_at: datetime,
        ref: Optional[str] = None,
    ) -> Entry:
        received_at = truncate_to_milliseconds(received_at)
        entry_dir, ref = await self._claim_directory(received_at, ref)

        epoch_seconds = int(received_at.timestamp())
        postcard_name, image_names = stored_names_for(postcard, images, epoch_seconds)

        entry = Entry(
            ref=ref,
            received_at=received_at,
            status=EntryStatus.RECEIVED,
            consent=consent,
            fields=fields,
            files=EntryFiles(postcard=postcard_name, images=image_names),
        )

        try:
            await self._write_bytes(entry_dir / postcard_name, postcard.content)
            for image_name, image in zip(image_names, images):
                await self._write_bytes(entry_dir / image_name, image.content)
            await self._write_meta(entry_dir, entry)
        except OSError as e:
            logger.error(f"Failed to write entry: {e}", extra={"ref": ref}, exc_info=True)
            raise StoreUnavailable(f"Failed to write entry {ref} at {entry_dir}: {e}") from e
        finally:
            self._invalidate_index()

        logger.info(
            f"Created entry: images={len(image_names)}, "
            f"size={postcard.size + sum(image.size for image in images)}",
            extra={"ref": ref},
        )
        return entry

    async def find(self, ref: str) -> Entry:
        return (await self._locate(ref)).entry

    async def exists(self, ref: str) -> bool:
        try:
            await self._locate(ref)
        except NotFound:
            return False
        return True

    async def update_status(self, ref: str, new_status: EntryStatus) -> Entry:
        stored = await self._locate(ref)
        updated = self.lifecycle.apply(stored.entry, new_status)

        try:
            await self._write_meta(stored.location, updated)
        except OSError as e:
            logger.error(f"Failed to update entry status: {e}", extra={"ref": ref}, exc_info=True)
            raise StoreUnavailable(f"Failed to write metadata for {ref}: {e}") from e
        finally:
            self._invalidate_index()

        status_transitions_total.labels(status=updated.status.value).inc()
        logger.info(
            f"Status changed: {stored.entry.status.value} -> {updated.status.value}",
            extra={"ref": ref, "status": updated.status.value},
        )
        return updated

    async def read_file(self, ref: str, file_name: str) -> EntryFile:
        stored = await self._locate(ref)

        # Only recorded names are ever joined onto the entry directory
        if file_name not in stored.entry.files.names():
            raise NotFound("File not found")

        path = stored.location / file_name
        entry_dir = stored.location.resolve()
        if entry_dir not in path.resolve().parents:
            logger.warning("Recorded file name escapes entry directory", extra={"ref": ref})
            raise NotFound("File not found")

        try:
            file_stat = await aiofiles.os.stat(path)
        except OSError:
            raise NotFound("File not found")

        if not stat.S_ISREG(file_stat.st_mode):
            raise NotFound("File not found")

        return EntryFile(name=file_name, size_bytes=file_stat.st_size, location=path)

    async def scan(self) -> List[StoredEntry]:
        if self.index is not None and self.index.is_warm:
            return self.index.entries()

        started = time.perf_counter()
        entries = await self._scan_directories()
        store_scan_duration_seconds.observe(time.perf_counter() - started)

        if self.index is not None:
            self.index.populate(entries)
        return entries

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _locate(self, ref: str) -> StoredEntry:
        entries = await self.scan()
        if self.index is not None:
            stored = self.index.lookup(ref)
        else:
            stored = next((candidate for candidate in entries if candidate.entry.ref == ref), None)

        if stored is None:
            raise NotFound("Entry not found")
        return stored

    async def _claim_directory(self, received_at: datetime, ref: Optional[str]) -> Tuple[Path, str]:
        """Create the entry directory exclusively, allocating a ref if needed."""
        day_dir = self.root / date_segment(received_at)
        try:
            await aiofiles.os.makedirs(day_dir, exist_ok=True)
        except OSError as e:
            raise StoreUnavailable(f"Cannot create day directory {day_dir}: {e}") from e

        if ref is not None:
            if await self.exists(ref):
                raise ReferenceCollision(f"Reference {ref} is already taken")
            try:
                await aiofiles.os.mkdir(day_dir / ref)
            except FileExistsError:
                raise ReferenceCollision(f"Reference {ref} is already taken")
            except OSError as e:
                raise StoreUnavailable(f"Cannot create entry directory for {ref}: {e}") from e
            return day_dir / ref, ref

        for attempt in range(1, self.max_create_attempts + 1):
            candidate = await self.allocator.allocate()
            try:
                await aiofiles.os.mkdir(day_dir / candidate)
            except FileExistsError:
                logger.warning(
                    f"Entry directory already exists on attempt {attempt}/{self.max_create_attempts}",
                    extra={"ref": candidate},
                )
                continue
            except OSError as e:
                raise StoreUnavailable(f"Cannot create entry directory for {candidate}: {e}") from e
            return day_dir / candidate, candidate

        raise AllocationExhausted("Could not allocate a reference. Please try again.")

    async def _read_meta(self, entry_dir: Path) -> Optional[Entry]:
        """Read an entry's metadata, or None if it is missing or unreadable."""
        meta_path = entry_dir / META_FILE_NAME
        try:
            async with aiofiles.open(meta_path, "rb") as handle:
                content = await handle.read()
        except FileNotFoundError:
            logger.debug(f"No metadata document in {entry_dir}")
            return None
        except OSError as e:
            logger.warning(f"Unreadable metadata document {meta_path}: {e}")
            return None

        try:
            return Entry.from_document(json.loads(content.decode("utf-8")))
        except ValueError as e:
            # Half-written, corrupt or not UTF-8; treat as temporarily unavailable
            logger.warning(f"Skipping unparsable metadata document {meta_path}: {e}")
            return None

    async def _scan_directories(self) -> List[StoredEntry]:
        try:
            await aiofiles.os.makedirs(self.root, exist_ok=True)
            day_names = sorted(await aiofiles.os.listdir(self.root))
        except OSError as e:
            logger.error(f"Entry store root unavailable: {e}", exc_info=True)
            raise StoreUnavailable(f"Cannot enumerate store root {self.root}: {e}") from e

        entries: List[StoredEntry] = []
        for day_name in day_names:
            day_dir = self.root / day_name
            if not await aiofiles.os.path.isdir(day_dir):
                continue

            try:
                entry_names = sorted(await aiofiles.os.listdir(day_dir))
            except OSError as e:
                logger.warning(f"Skipping unreadable day directory {day_dir}: {e}")
                continue

            for entry_name in entry_names:
                entry_dir = day_dir / entry_name
                if not await aiofiles.os.path.isdir(entry_dir):
                    continue

                entry = await self._read_meta(entry_dir)
                if entry is None:
                    store_scan_skipped_total.inc()
                    continue
                entries.append(StoredEntry(entry=entry, location=entry_dir))

        return entries

    async def _write_bytes(self, path: Path, data: bytes) -> None:
        async with aiofiles.open(path, "wb") as handle:
            await handle.write(data)

    async def _write_meta(self, entry_dir: Path, entry: Entry) -> None:
        """Write meta.json via a temp file and rename (atomic replace)."""
        content = json.dumps(entry.to_document(), indent=2, ensure_ascii=False)
        temp_path = entry_dir / META_TEMP_NAME
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as handle:
            await handle.write(content)
        await aiofiles.os.replace(temp_path, entry_dir / META_FILE_NAME)

    def _invalidate_index(self) -> None:
        if self.index is not None:
            self.index.invalidate()
