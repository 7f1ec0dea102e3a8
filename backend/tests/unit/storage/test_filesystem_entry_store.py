"""Unit tests for the file-system entry store

Covers the directory layout, metadata round trips, reference uniqueness,
path containment for file reads, tolerance of half-written entries and the
optional in-memory index.
"""

import json

import pytest

from postcards.domain.entries.entry_status import EntryStatus
from postcards.domain.entries.errors import (
    AllocationExhausted,
    NotFound,
    ReferenceCollision,
    StoreUnavailable,
)
from postcards.domain.entries.models import Entry, EntryFiles
from postcards.domain.entries.ports.entry_store_port import StoredEntry
from postcards.domain.entries.reference import ReferenceAllocator
from postcards.infrastructure.storage.entry_index import EntryIndex
from postcards.infrastructure.storage.filesystem_entry_store import (
    META_FILE_NAME,
    META_TEMP_NAME,
    FilesystemEntryStore,
)


DAY = "20250301"
EPOCH = 1740821400


async def _create(store, sample_fields, make_pdf_upload, received_at, images=(), **kwargs):
    return await store.create(
        fields=sample_fields,
        consent=True,
        postcard=make_pdf_upload(),
        images=list(images),
        received_at=received_at,
        **kwargs,
    )


class TestCreate:
    """Test entry creation and layout"""

    @pytest.mark.asyncio
    async def test_layout_and_metadata(self, store, store_root, sample_fields, make_pdf_upload,
                                       make_image_upload, received_at, pdf_bytes, jpeg_bytes):
        """Test files and meta.json land in <root>/<day>/<ref>/"""
        entry = await _create(store, sample_fields, make_pdf_upload, received_at, images=[make_image_upload()])

        entry_dir = store_root / DAY / entry.ref
        assert entry_dir.is_dir()
        assert (entry_dir / f"Karte_{EPOCH}.pdf").read_bytes() == pdf_bytes
        assert (entry_dir / f"foto_{EPOCH + 1}.jpg").read_bytes() == jpeg_bytes

        document = json.loads((entry_dir / META_FILE_NAME).read_text(encoding="utf-8"))
        assert document["ref"] == entry.ref
        assert document["status"] == "received"
        assert document["receivedAt"] == "2025-03-01T09:30:00.000Z"
        assert document["consent"] is True
        assert document["fields"]["fullName"] == "Ada Lovelace"
        assert document["files"] == {"postcard": f"Karte_{EPOCH}.pdf", "images": [f"foto_{EPOCH + 1}.jpg"]}

    @pytest.mark.asyncio
    async def test_no_temp_file_left(self, store, store_root, sample_fields, make_pdf_upload, received_at):
        """Test the atomic write leaves only meta.json behind"""
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        assert not (store_root / DAY / entry.ref / META_TEMP_NAME).exists()

    @pytest.mark.asyncio
    async def test_round_trip(self, store, sample_fields, make_pdf_upload, received_at):
        """Test find returns what create returned"""
        created = await _create(store, sample_fields, make_pdf_upload, received_at)
        assert await store.find(created.ref) == created

    @pytest.mark.asyncio
    async def test_references_unique(self, store, sample_fields, make_pdf_upload, received_at):
        """Test many creates on one day all get distinct references"""
        refs = [(await _create(store, sample_fields, make_pdf_upload, received_at)).ref for _ in range(20)]
        assert len(set(refs)) == 20

    @pytest.mark.asyncio
    async def test_explicit_reference_collision(self, store, sample_fields, make_pdf_upload, received_at):
        """Test a caller-chosen reference cannot be reused"""
        await _create(store, sample_fields, make_pdf_upload, received_at, ref="ABCDEF01")
        with pytest.raises(ReferenceCollision):
            await _create(store, sample_fields, make_pdf_upload, received_at, ref="ABCDEF01")

    @pytest.mark.asyncio
    async def test_explicit_reference_collision_across_days(self, store, sample_fields, make_pdf_upload, received_at):
        """Test uniqueness spans day directories"""
        await _create(store, sample_fields, make_pdf_upload, received_at, ref="ABCDEF01")
        next_day = received_at.replace(day=2)
        with pytest.raises(ReferenceCollision):
            await _create(store, sample_fields, make_pdf_upload, next_day, ref="ABCDEF01")

    @pytest.mark.asyncio
    async def test_allocation_exhausted(self, store_root, sample_fields, make_pdf_upload, received_at):
        """Test a generator that only repeats a taken reference gives up"""
        store = FilesystemEntryStore(store_root)
        store.allocator = ReferenceAllocator(store.exists, generator=lambda: "DEADBEEF")
        await _create(store, sample_fields, make_pdf_upload, received_at)

        with pytest.raises(AllocationExhausted):
            await _create(store, sample_fields, make_pdf_upload, received_at)

    @pytest.mark.asyncio
    async def test_exclusive_directory_gate(self, store_root, sample_fields, make_pdf_upload, received_at):
        """Test an existing directory without metadata still blocks the reference"""
        (store_root / DAY / "DEADBEEF").mkdir(parents=True)
        store = FilesystemEntryStore(store_root, max_create_attempts=3)
        store.allocator = ReferenceAllocator(store.exists, generator=lambda: "DEADBEEF")

        with pytest.raises(AllocationExhausted):
            await _create(store, sample_fields, make_pdf_upload, received_at)

    @pytest.mark.asyncio
    async def test_unwritable_root(self, tmp_path, sample_fields, make_pdf_upload, received_at):
        """Test a root that is a regular file surfaces StoreUnavailable"""
        root = tmp_path / "not-a-directory"
        root.write_text("x")
        store = FilesystemEntryStore(root)

        with pytest.raises(StoreUnavailable):
            await store.create(sample_fields, True, make_pdf_upload(), [], received_at, ref="ABCDEF01")


class TestUpdateStatus:
    """Test status persistence"""

    @pytest.mark.asyncio
    async def test_status_persisted(self, store, store_root, sample_fields, make_pdf_upload, received_at):
        """Test the new status and timestamp reach meta.json"""
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)

        updated = await store.update_status(entry.ref, EntryStatus.APPROVED)

        assert updated.status == EntryStatus.APPROVED
        assert updated.approved_at is not None
        document = json.loads((store_root / DAY / entry.ref / META_FILE_NAME).read_text(encoding="utf-8"))
        assert document["status"] == "approved"
        assert "approvedAt" in document
        assert (await store.find(entry.ref)).status == EntryStatus.APPROVED

    @pytest.mark.asyncio
    async def test_other_fields_unchanged(self, store, sample_fields, make_pdf_upload, received_at):
        """Test fields, files and receivedAt survive a status change"""
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)

        updated = await store.update_status(entry.ref, EntryStatus.WINNER)

        assert updated.fields == entry.fields
        assert updated.files == entry.files
        assert updated.received_at == entry.received_at

    @pytest.mark.asyncio
    async def test_unknown_keys_survive(self, store, store_root, sample_fields, make_pdf_upload, received_at):
        """Test keys written by other tools are kept across a status change"""
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        meta_path = store_root / DAY / entry.ref / META_FILE_NAME
        document = json.loads(meta_path.read_text(encoding="utf-8"))
        document["raffle"] = True
        meta_path.write_text(json.dumps(document), encoding="utf-8")

        updated = await store.update_status(entry.ref, EntryStatus.APPROVED)

        assert updated.to_document()["raffle"] is True
        on_disk = json.loads(meta_path.read_text(encoding="utf-8"))
        assert on_disk["raffle"] is True
        assert on_disk["status"] == "approved"

    @pytest.mark.asyncio
    async def test_unknown_reference(self, store):
        with pytest.raises(NotFound):
            await store.update_status("00000000", EntryStatus.APPROVED)


class TestReadFile:
    """Test that only recorded files inside the entry directory are served"""

    @pytest.mark.asyncio
    async def test_recorded_file(self, store, sample_fields, make_pdf_upload, received_at, pdf_bytes):
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)

        entry_file = await store.read_file(entry.ref, entry.files.postcard)

        assert entry_file.name == entry.files.postcard
        assert entry_file.size_bytes == len(pdf_bytes)
        chunks = [chunk async for chunk in entry_file.iter_chunks(chunk_size=16)]
        assert b"".join(chunks) == pdf_bytes
        assert all(len(chunk) <= 16 for chunk in chunks)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("file_name", [
        "meta.json",
        "../meta.json",
        "../../etc/passwd",
        "unknown.pdf",
        "",
    ])
    async def test_unrecorded_names_rejected(self, store, sample_fields, make_pdf_upload, received_at, file_name):
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        with pytest.raises(NotFound):
            await store.read_file(entry.ref, file_name)

    @pytest.mark.asyncio
    async def test_recorded_but_missing_on_disk(self, store, store_root, sample_fields, make_pdf_upload, received_at):
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        (store_root / DAY / entry.ref / entry.files.postcard).unlink()

        with pytest.raises(NotFound):
            await store.read_file(entry.ref, entry.files.postcard)

    @pytest.mark.asyncio
    async def test_tampered_metadata_cannot_escape(self, store, store_root, sample_fields, make_pdf_upload, received_at):
        """Test a traversal name written into meta.json is still refused"""
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        (store_root / "secret.txt").write_text("secret")
        meta_path = store_root / DAY / entry.ref / META_FILE_NAME
        document = json.loads(meta_path.read_text(encoding="utf-8"))
        document["files"]["images"] = ["../../secret.txt"]
        meta_path.write_text(json.dumps(document), encoding="utf-8")

        with pytest.raises(NotFound):
            await store.read_file(entry.ref, "../../secret.txt")

    @pytest.mark.asyncio
    async def test_unknown_reference(self, store):
        with pytest.raises(NotFound):
            await store.read_file("00000000", "Karte.pdf")


class TestScan:
    """Test enumeration tolerance"""

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        assert await store.scan() == []

    @pytest.mark.asyncio
    async def test_skips_incomplete_entries(self, store, store_root, sample_fields, make_pdf_upload, received_at):
        """Test directories without or with broken meta.json are skipped"""
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        (store_root / DAY / "NOMETA01").mkdir()
        broken = store_root / DAY / "BROKEN01"
        broken.mkdir()
        (broken / META_FILE_NAME).write_text('{"ref": "BROKEN01", "recei', encoding="utf-8")
        (store_root / "stray.txt").write_text("not a day directory")
        (store_root / DAY / "stray.txt").write_text("not an entry directory")

        scanned = await store.scan()

        assert [stored.entry.ref for stored in scanned] == [entry.ref]
        assert not await store.exists("BROKEN01")

    @pytest.mark.asyncio
    async def test_skips_metadata_that_is_not_utf8(self, store, store_root, sample_fields, make_pdf_upload, received_at):
        """Test undecodable meta.json bytes are skipped, not fatal"""
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        garbled = store_root / DAY / "BADUTF81"
        garbled.mkdir()
        (garbled / META_FILE_NAME).write_bytes(b'{"ref": "\xff\xfe"}')

        scanned = await store.scan()

        assert [stored.entry.ref for stored in scanned] == [entry.ref]
        assert await store.exists(entry.ref)
        assert not await store.exists("BADUTF81")

    @pytest.mark.asyncio
    async def test_scan_reports_location(self, store, store_root, sample_fields, make_pdf_upload, received_at):
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        scanned = await store.scan()
        assert scanned[0].location == store_root / DAY / entry.ref

    @pytest.mark.asyncio
    async def test_sees_external_changes_without_index(self, store, store_root, sample_fields, make_pdf_upload, received_at):
        """Test every scan re-reads the directory tree"""
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        assert await store.exists(entry.ref)

        meta_path = store_root / DAY / entry.ref / META_FILE_NAME
        meta_path.unlink()

        assert not await store.exists(entry.ref)


class TestEntryIndex:
    """Test the optional scan cache"""

    @pytest.mark.asyncio
    async def test_index_serves_repeated_scans(self, store_root, sample_fields, make_pdf_upload, received_at):
        """Test a warm index hides out-of-band changes until the next write"""
        store = FilesystemEntryStore(store_root, index=EntryIndex())
        first = await _create(store, sample_fields, make_pdf_upload, received_at)
        assert await store.exists(first.ref)

        (store_root / DAY / first.ref / META_FILE_NAME).unlink()
        assert await store.exists(first.ref)

        second = await _create(store, sample_fields, make_pdf_upload, received_at)
        assert not await store.exists(first.ref)
        assert await store.exists(second.ref)

    @pytest.mark.asyncio
    async def test_index_invalidated_on_status_change(self, store_root, sample_fields, make_pdf_upload, received_at):
        store = FilesystemEntryStore(store_root, index=EntryIndex())
        entry = await _create(store, sample_fields, make_pdf_upload, received_at)
        await store.scan()

        await store.update_status(entry.ref, EntryStatus.DELETED)

        assert store.index.is_warm is False
        assert (await store.find(entry.ref)).status == EntryStatus.DELETED

    def test_lookup_first_occurrence_wins(self, tmp_path, sample_fields, received_at):
        """Test duplicate references resolve to the first scanned entry"""
        entry = Entry(
            ref="AAAAAAAA",
            received_at=received_at,
            consent=True,
            fields=sample_fields,
            files=EntryFiles(postcard="Karte.pdf"),
        )
        first = StoredEntry(entry=entry, location=tmp_path / "first")
        second = StoredEntry(entry=entry, location=tmp_path / "second")

        index = EntryIndex()
        index.populate([first, second])

        assert index.is_warm
        assert index.lookup("AAAAAAAA") is first
        assert index.lookup("BBBBBBBB") is None

        index.invalidate()
        assert not index.is_warm
        assert index.entries() == []
