"""Admin API endpoints for reviewing postcard entries

Provides listing with filters and pagination, entry detail, file and ZIP
downloads, status changes and CSV/JSON exports. Every route requires HTTP
Basic credentials and responds with Cache-Control: no-store.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import StreamingResponse

from ..dependencies import get_entry_store, get_exporter, get_query_service, require_admin
from ..domain.entries.entry_status import parse_status_filter
from ..domain.entries.errors import ValidationFailure
from ..domain.entries.ports.entry_store_port import EntryStorePort
from ..domain.entries.query import DEFAULT_PAGE_SIZE, EntryFilter, EntryQueryService
from ..domain.entries.timestamps import parse_timestamp
from ..infrastructure.export.entry_exporter import EntryExporter
from .schemas import (
    EntryDetailResponse,
    EntryExportResponse,
    EntryListResponse,
    StatusUpdateRequest,
    list_item,
)

logger = logging.getLogger(__name__)

CSV_EXPORT_NAME = "postkarten.csv"

MIME_BY_EXTENSION = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


def detect_mime(file_name: str) -> str:
    """Content type for a stored file, derived from its extension.

    Example:
        >>> detect_mime("Bild_1_1740821401.JPG")
        'image/jpeg'
    """
    lower = file_name.lower()
    for extension, mime_type in MIME_BY_EXTENSION.items():
        if lower.endswith(extension):
            return mime_type
    return "application/octet-stream"


def _parse_bound(value: Optional[str], name: str):
    if value is None or not value.strip():
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        raise ValidationFailure(f"Invalid '{name}' date: {value}")


def entry_filter_params(
    query: Optional[str] = Query(None, description="Search in ref, name, email, location, term, message"),
    faculty: Optional[str] = Query(None, description="Exact faculty (case-insensitive)"),
    status: Optional[str] = Query(None, description="received, approved, deleted, winner or all"),
    received_from: Optional[str] = Query(None, alias="from", description="Inclusive lower bound (ISO-8601)"),
    received_to: Optional[str] = Query(None, alias="to", description="Inclusive upper bound (ISO-8601)"),
) -> EntryFilter:
    """Build an EntryFilter from listing/export query parameters."""
    try:
        status_filter = parse_status_filter(status)
    except ValueError:
        raise ValidationFailure(f"Invalid status filter: {status}")

    return EntryFilter(
        query=query,
        faculty=faculty,
        status=status_filter,
        received_from=_parse_bound(received_from, "from"),
        received_to=_parse_bound(received_to, "to"),
    )


@router.get("/entries", response_model=EntryListResponse)
async def list_entries(
    entry_filter: EntryFilter = Depends(entry_filter_params),
    page: int = Query(1, description="1-based page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, description="Page size (1-100)"),
    queries: EntryQueryService = Depends(get_query_service),
):
    """List entries matching the filters, most recent first."""
    result = await queries.page(entry_filter, page=page, page_size=limit)
    return EntryListResponse(
        items=[list_item(entry) for entry in result.items],
        total=result.total,
        page=result.page,
        pages=result.pages,
    )


@router.get("/entries/{ref}", response_model=EntryDetailResponse)
async def get_entry(ref: str, queries: EntryQueryService = Depends(get_query_service)):
    """Full metadata document of one entry."""
    entry = await queries.find(ref)
    document = entry.to_document()
    return EntryDetailResponse(meta=document, files=document["files"])


@router.get("/entries/{ref}/files/{file_name}")
async def get_entry_file(ref: str, file_name: str, store: EntryStorePort = Depends(get_entry_store)):
    """Serve one recorded file of an entry inline."""
    entry_file = await store.read_file(ref, file_name)
    return StreamingResponse(
        entry_file.iter_chunks(),
        media_type=detect_mime(entry_file.name),
        headers={
            "Content-Disposition": f'inline; filename="{entry_file.name}"',
            "Content-Length": str(entry_file.size_bytes),
        },
    )


@router.get("/entries/{ref}/download/zip")
async def download_entry_zip(ref: str, exporter: EntryExporter = Depends(get_exporter)):
    """Bundle meta.json, the postcard and all images into one ZIP."""
    archive = await exporter.export_zip(ref)
    return StreamingResponse(
        archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{ref}_postkarte.zip"'},
    )


@router.patch("/entries/{ref}/status", response_model=EntryDetailResponse)
async def update_entry_status(
    ref: str,
    body: StatusUpdateRequest,
    store: EntryStorePort = Depends(get_entry_store),
):
    """Move an entry to a new review status."""
    updated = await store.update_status(ref, body.status)
    document = updated.to_document()
    return EntryDetailResponse(meta=document, files=document["files"])


@router.get("/export.csv")
async def export_csv(
    entry_filter: EntryFilter = Depends(entry_filter_params),
    exporter: EntryExporter = Depends(get_exporter),
):
    """Semicolon-separated export of all matching entries."""
    content = await exporter.export_csv(entry_filter)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{CSV_EXPORT_NAME}"'},
    )


@router.get("/export.json", response_model=EntryExportResponse)
async def export_json(
    entry_filter: EntryFilter = Depends(entry_filter_params),
    exporter: EntryExporter = Depends(get_exporter),
):
    """Full metadata documents of all matching entries."""
    return EntryExportResponse(items=await exporter.export_json(entry_filter))
