"""Admin API schemas and listing projections"""

from typing import Any, Dict, List

from pydantic import BaseModel

from ..domain.entries.entry_status import EntryStatus
from ..domain.entries.models import Entry


class StatusUpdateRequest(BaseModel):
    """Body of PATCH /admin/entries/{ref}/status"""
    status: EntryStatus


class EntryListResponse(BaseModel):
    ok: bool = True
    items: List[Dict[str, Any]]
    total: int
    page: int
    pages: int


class EntryDetailResponse(BaseModel):
    ok: bool = True
    meta: Dict[str, Any]
    files: Dict[str, Any]


class EntryExportResponse(BaseModel):
    ok: bool = True
    items: List[Dict[str, Any]]


def list_item(entry: Entry) -> Dict[str, Any]:
    """Reduced listing row: metadata without review timestamps plus file counts."""
    document = entry.to_document()
    return {
        "ref": entry.ref,
        "receivedAt": document["receivedAt"],
        "status": entry.status.value,
        "consent": entry.consent,
        "fields": document["fields"],
        "counts": {
            "images": len(entry.files.images),
            "nFiles": len(entry.files.names()),
        },
        "hasPdf": bool(entry.files.postcard),
    }
