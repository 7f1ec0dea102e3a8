"""Submission workflow: validate uploaded files, then persist the entry.

Files are checked completely before anything touches the store, so a
rejected submission never leaves a directory behind.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..domain.entries.errors import AllocationExhausted, StoreUnavailable, ValidationFailure
from ..domain.entries.models import Entry, EntryFields, UploadedFile
from ..domain.entries.ports.entry_store_port import EntryStorePort
from ..domain.entries.timestamps import utc_now
from ..domain.entries.validation import UploadLimits, validate_submission
from ..observability.metrics import submission_rejections_total, submissions_total

logger = logging.getLogger(__name__)


def _rejection_reason(error: ValidationFailure) -> str:
    if error.status_code == 413:
        return "size"
    if error.status_code == 415:
        return "content"
    return "files"


class SubmissionService:
    """Accepts one postcard submission at a time.

    Example:
        service = SubmissionService(store, settings.upload_limits)
        entry = await service.submit(fields, postcard, images)
    """

    def __init__(self, store: EntryStorePort, limits: Optional[UploadLimits] = None, clock=utc_now):
        self.store = store
        self.limits = limits or UploadLimits()
        self.clock = clock

    async def submit(
        self,
        fields: EntryFields,
        postcard: Optional[UploadedFile],
        images: Sequence[UploadedFile],
        received_at: Optional[datetime] = None,
    ) -> Entry:
        """Validate and store a submission.

        Raises:
            ValidationFailure: If any file check fails (nothing is stored)
            AllocationExhausted: If no free reference could be drawn
            StoreUnavailable: If the store could not be written
        """
        try:
            validate_submission(postcard, images, self.limits)
        except ValidationFailure as e:
            submissions_total.labels(outcome="rejected").inc()
            submission_rejections_total.labels(reason=_rejection_reason(e)).inc()
            logger.info(f"Submission rejected: {e.message}", extra={"reason": _rejection_reason(e)})
            raise

        try:
            entry = await self.store.create(
                fields=fields,
                consent=True,
                postcard=postcard,
                images=images,
                received_at=received_at or self.clock(),
            )
        except AllocationExhausted:
            submissions_total.labels(outcome="rejected").inc()
            submission_rejections_total.labels(reason="allocation").inc()
            raise
        except StoreUnavailable:
            submissions_total.labels(outcome="rejected").inc()
            submission_rejections_total.labels(reason="storage").inc()
            raise

        submissions_total.labels(outcome="accepted").inc()
        return entry


def record_form_rejection() -> None:
    """Count a submission refused because of its text fields."""
    submissions_total.labels(outcome="rejected").inc()
    submission_rejections_total.labels(reason="form").inc()
