"""Entry models and the on-disk metadata document

The metadata document (meta.json) is the single source of truth for an entry.
Models serialize with camelCase keys so the files stay readable by the admin
front-end and by earlier exports:

    {
      "ref": "1A2B3C4D",
      "receivedAt": "2025-03-01T09:30:00.000Z",
      "status": "received",
      "consent": true,
      "fields": {"fullName": "...", "email": "...", "role": "Outgoing", ...},
      "files": {"postcard": "Postkarte_1740821400.pdf", "images": [...]},
      "approvedAt": "...",   # optional
      "deletedAt": "..."     # optional
    }
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .entry_status import EntryStatus
from .timestamps import format_timestamp


DEFAULT_ROLE = "Outgoing"


class EntryFields(BaseModel):
    """Submitter-provided attributes, immutable after creation"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    full_name: str = Field(..., alias="fullName")
    email: str
    faculty: Optional[str] = None
    role: str = DEFAULT_ROLE
    location: Optional[str] = None
    term: Optional[str] = None
    message: Optional[str] = None


class EntryFiles(BaseModel):
    """Stored file names: one postcard document plus ordered images"""
    model_config = ConfigDict(frozen=True)

    postcard: str
    images: List[str] = Field(default_factory=list)

    def names(self) -> List[str]:
        """All file names the entry may serve, postcard first."""
        return [self.postcard, *self.images]


class Entry(BaseModel):
    """One submitted postcard package and its review state.

    Keys this model does not declare are kept and written back unchanged.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    ref: str
    received_at: datetime = Field(..., alias="receivedAt")
    status: EntryStatus = EntryStatus.RECEIVED
    consent: bool
    fields: EntryFields
    files: EntryFiles
    approved_at: Optional[datetime] = Field(None, alias="approvedAt")
    deleted_at: Optional[datetime] = Field(None, alias="deletedAt")

    @field_serializer("received_at", "approved_at", "deleted_at")
    def _serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the meta.json shape (absent optionals omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Entry":
        return cls.model_validate(document)


@dataclass(frozen=True)
class UploadedFile:
    """Raw upload as received from the ingestion caller.

    Attributes:
        original_name: Client-supplied file name (untrusted, may be empty)
        content: Complete file bytes
        mime_type: Declared MIME type (untrusted)
    """
    original_name: str
    content: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)
