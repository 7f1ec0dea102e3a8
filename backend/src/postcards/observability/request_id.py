"""Request ID management for request correlation.

Provides context-aware request ID generation and propagation across async operations.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable for request_id (async-safe)
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Inbound IDs are echoed in headers and logs, so keep them short and plain
_ACCEPTED_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def generate_request_id() -> str:
    """Generate a new unique request ID (UUID v4)."""
    return str(uuid.uuid4())


def accept_request_id(candidate: Optional[str]) -> str:
    """Reuse a client-supplied request ID if it is well-formed, else generate one."""
    if candidate and _ACCEPTED_REQUEST_ID.match(candidate):
        return candidate
    return generate_request_id()


def get_request_id() -> str:
    """Get current request ID from context, or "no-request-id" if not set."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
