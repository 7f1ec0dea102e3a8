"""Public status API endpoints

Lets submitters look up their entry by reference and feeds the "recent
postcards" strip on the landing page. References are matched
case-insensitively by upper-casing the path parameter.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ..config import Settings, get_settings
from ..dependencies import get_entry_store, get_query_service
from ..domain.entries.errors import NotFound
from ..domain.entries.ports.entry_store_port import EntryStorePort
from ..domain.entries.query import EntryQueryService
from .schemas import EntryStatusResponse, RecentEntriesResponse, RecentEntry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/status", tags=["Status"])


# Declared before /{ref} so "recent" is never taken for a reference
@router.get("/recent", response_model=RecentEntriesResponse, response_model_by_alias=True)
async def recent_entries(
    queries: EntryQueryService = Depends(get_query_service),
    settings: Settings = Depends(get_settings),
):
    """Most recent approved or winning entries (no personal data)."""
    entries = await queries.recent(settings.RECENT_ENTRIES_LIMIT)
    return RecentEntriesResponse(
        items=[
            RecentEntry(
                ref=entry.ref,
                received_at=entry.received_at,
                location=entry.fields.location,
                postcard_available=bool(entry.files.postcard),
            )
            for entry in entries
        ]
    )


@router.get("/{ref}/postcard")
async def download_postcard(ref: str, store: EntryStorePort = Depends(get_entry_store)):
    """Stream the postcard PDF of an entry inline."""
    ref = ref.upper()
    try:
        entry = await store.find(ref)
    except NotFound:
        raise NotFound("Reference not found.")

    try:
        postcard = await store.read_file(ref, entry.files.postcard)
    except NotFound:
        raise NotFound("Postcard not found.")

    return StreamingResponse(
        postcard.iter_chunks(),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{postcard.name}"',
            "Content-Length": str(postcard.size_bytes),
        },
    )


@router.get("/{ref}", response_model=EntryStatusResponse, response_model_by_alias=True)
async def entry_status(ref: str, queries: EntryQueryService = Depends(get_query_service)):
    """Current review state of an entry."""
    try:
        entry = await queries.find(ref.upper())
    except NotFound:
        raise NotFound("Reference not found.")

    return EntryStatusResponse(
        ref=entry.ref,
        status=entry.status,
        received_at=entry.received_at,
        approved_at=entry.approved_at,
        deleted_at=entry.deleted_at,
    )
