"""Entries domain module - postcard ingestion, validation, lifecycle, querying"""

from .entry_status import EntryStatus, STATUS_FILTER_ALL, ALLOWED_TRANSITIONS, can_transition
from .errors import (
    EntryError,
    ValidationFailure,
    NotFound,
    AllocationExhausted,
    StoreUnavailable,
    ReferenceCollision,
)
from .models import Entry, EntryFields, EntryFiles, UploadedFile
from .content_validation import ContentVerdict, validate_content, is_pdf, is_supported_image
from .validation import (
    UploadLimits,
    sanitize_filename,
    add_timestamp_suffix,
    validate_file_size,
    validate_submission,
)
from .lifecycle import LifecycleManager, TransitionPolicy, PermissiveTransitionPolicy
from .reference import ReferenceAllocator, generate_reference, MAX_ALLOCATION_ATTEMPTS
from .query import EntryFilter, EntryQueryService, Page, matches_filter, paginate

__all__ = [
    "EntryStatus",
    "STATUS_FILTER_ALL",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "EntryError",
    "ValidationFailure",
    "NotFound",
    "AllocationExhausted",
    "StoreUnavailable",
    "ReferenceCollision",
    "Entry",
    "EntryFields",
    "EntryFiles",
    "UploadedFile",
    "ContentVerdict",
    "validate_content",
    "is_pdf",
    "is_supported_image",
    "UploadLimits",
    "sanitize_filename",
    "add_timestamp_suffix",
    "validate_file_size",
    "validate_submission",
    "LifecycleManager",
    "TransitionPolicy",
    "PermissiveTransitionPolicy",
    "ReferenceAllocator",
    "generate_reference",
    "MAX_ALLOCATION_ATTEMPTS",
    "EntryFilter",
    "EntryQueryService",
    "Page",
    "matches_filter",
    "paginate",
]
