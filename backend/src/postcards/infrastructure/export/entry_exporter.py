"""Entry exports: CSV, JSON and per-entry ZIP bundles.

CSV uses ';' as delimiter with a fixed 13-column header. Cells containing the
delimiter, a newline or a quote are quoted with inner quotes doubled; image
names are joined into one comma-separated cell.

ZIP bundles contain meta.json plus the postcard and every image under their
stored names. The archive is produced incrementally so at most one chunk of
one file is held in memory.
"""

import csv
import io
import json
import logging
import zipfile
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from ...domain.entries.models import Entry
from ...domain.entries.ports.entry_store_port import DEFAULT_CHUNK_SIZE, EntryFile, EntryStorePort
from ...domain.entries.query import EntryFilter, EntryQueryService
from ...observability.metrics import exports_total

logger = logging.getLogger(__name__)

CSV_DELIMITER = ";"

CSV_HEADERS = [
    "ref",
    "receivedAt",
    "status",
    "fullName",
    "email",
    "faculty",
    "role",
    "location",
    "term",
    "message",
    "consent",
    "postcard",
    "images",
]

META_ARCHIVE_NAME = "meta.json"


def csv_row(entry: Entry) -> List[str]:
    """Flatten one entry into the CSV column order."""
    document = entry.to_document()
    fields = entry.fields
    return [
        entry.ref,
        document["receivedAt"],
        entry.status.value,
        fields.full_name,
        fields.email,
        fields.faculty or "",
        fields.role,
        fields.location or "",
        fields.term or "",
        fields.message or "",
        "true" if entry.consent else "false",
        entry.files.postcard,
        ",".join(entry.files.images),
    ]


def render_csv(entries: Iterable[Entry]) -> str:
    """Render entries as a semicolon-separated CSV document.

    Example:
        >>> render_csv([]).splitlines()[0]
        'ref;receivedAt;status;fullName;email;faculty;role;location;term;message;consent;postcard;images'
    """
    output = io.StringIO()
    writer = csv.writer(
        output,
        delimiter=CSV_DELIMITER,
        quotechar='"',
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writerow(CSV_HEADERS)
    for entry in entries:
        writer.writerow(csv_row(entry))
    return output.getvalue()


def render_json(entries: Iterable[Entry]) -> List[Dict[str, Any]]:
    """Full metadata documents, in the order given."""
    return [entry.to_document() for entry in entries]


class _ChunkSink(io.RawIOBase):
    """Write-only, non-seekable sink that hands out what was written so far.

    zipfile switches to streaming mode (data descriptors) for non-seekable
    outputs, which is what lets the archive be emitted piece by piece.
    """

    def __init__(self):
        super().__init__()
        self._chunks: List[bytes] = []

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


async def stream_entry_archive(
    entry: Entry,
    files: List[EntryFile],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    """Yield a ZIP archive of an entry's metadata and files.

    Args:
        entry: Entry whose metadata is re-serialized as meta.json
        files: Resolved files, postcard first
        chunk_size: Read size per file chunk
    """
    sink = _ChunkSink()
    with zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        meta = json.dumps(entry.to_document(), indent=2, ensure_ascii=False)
        archive.writestr(META_ARCHIVE_NAME, meta)
        yield sink.drain()

        for entry_file in files:
            with archive.open(entry_file.name, mode="w") as member:
                async for chunk in entry_file.iter_chunks(chunk_size):
                    member.write(chunk)
                    data = sink.drain()
                    if data:
                        yield data
            data = sink.drain()
            if data:
                yield data

    yield sink.drain()


class EntryExporter:
    """Renders filtered result sets and single-entry bundles.

    Example:
        exporter = EntryExporter(store)
        csv_text = await exporter.export_csv(EntryFilter(status=EntryStatus.APPROVED))
        archive = await exporter.export_zip("9F03A1C2")
        async for chunk in archive:
            ...
    """

    def __init__(self, store: EntryStorePort, queries: Optional[EntryQueryService] = None):
        self.store = store
        self.queries = queries or EntryQueryService(store)

    async def export_csv(self, entry_filter: Optional[EntryFilter] = None) -> str:
        entries = await self.queries.list(entry_filter)
        exports_total.labels(format="csv").inc()
        logger.info(f"Rendered CSV export with {len(entries)} entries", extra={"export_format": "csv"})
        return render_csv(entries)

    async def export_json(self, entry_filter: Optional[EntryFilter] = None) -> List[Dict[str, Any]]:
        entries = await self.queries.list(entry_filter)
        exports_total.labels(format="json").inc()
        logger.info(f"Rendered JSON export with {len(entries)} entries", extra={"export_format": "json"})
        return render_json(entries)

    async def export_zip(self, ref: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Resolve every file up front, then return the archive stream.

        Raises:
            NotFound: If the entry or any of its recorded files is missing
        """
        entry = await self.store.find(ref)
        files = [await self.store.read_file(ref, name) for name in entry.files.names()]
        exports_total.labels(format="zip").inc()
        logger.info(f"Streaming ZIP bundle with {len(files)} files", extra={"ref": ref, "export_format": "zip"})
        return stream_entry_archive(entry, files, chunk_size=chunk_size)
