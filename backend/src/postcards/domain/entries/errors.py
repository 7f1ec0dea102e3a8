"""Typed failures raised by the entries domain.

Every failure is scoped to a single operation. Routers translate these into
HTTP responses in main.py; raw file-system errors never cross this boundary.
"""


class EntryError(Exception):
    """Base exception for entry ingestion, storage and review operations."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(EntryError):
    """Caller-correctable problem with a submission or request.

    Covers bad content signatures, oversized uploads, too many images,
    unsupported MIME types and rejected status transitions. The message is
    surfaced to the caller verbatim.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFound(EntryError):
    """Unknown reference or a file name not authorized for the entry."""

    status_code = 404


class AllocationExhausted(EntryError):
    """No free reference could be allocated within the attempt budget."""

    status_code = 503


class StoreUnavailable(EntryError):
    """Underlying I/O failure or corrupt metadata document.

    The message may contain file-system detail and is only ever logged.
    """

    status_code = 500


class ReferenceCollision(EntryError):
    """Entry directory for a freshly allocated reference already exists."""

    status_code = 409
