"""Public status API schemas"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from ..domain.entries.entry_status import EntryStatus
from ..domain.entries.timestamps import format_timestamp


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EntryStatusResponse(_CamelModel):
    """Review state of one entry as shown to its submitter"""
    ok: bool = True
    ref: str
    status: EntryStatus
    received_at: datetime = Field(..., alias="receivedAt")
    approved_at: Optional[datetime] = Field(None, alias="approvedAt")
    deleted_at: Optional[datetime] = Field(None, alias="deletedAt")

    @field_serializer("received_at", "approved_at", "deleted_at")
    def _serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value)


class RecentEntry(_CamelModel):
    ref: str
    received_at: datetime = Field(..., alias="receivedAt")
    location: Optional[str] = None
    postcard_available: bool = Field(..., alias="postcardAvailable")

    @field_serializer("received_at")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class RecentEntriesResponse(BaseModel):
    ok: bool = True
    items: List[RecentEntry]
