"""Reference allocation for new entries

References are 8 uppercase hex characters (4 random bytes). The existence
check below narrows collisions across days; the record store's exclusive
directory creation is the final uniqueness gate within a day.
"""

import logging
import secrets
from typing import Awaitable, Callable

from .errors import AllocationExhausted

logger = logging.getLogger(__name__)

REFERENCE_BYTES = 4
MAX_ALLOCATION_ATTEMPTS = 5


def generate_reference() -> str:
    """Generate a random reference, e.g. '9F03A1C2'."""
    return secrets.token_hex(REFERENCE_BYTES).upper()


class ReferenceAllocator:
    """Picks references that no stored entry uses yet.

    Args:
        exists: Async predicate answering whether a ref is already taken
        generator: Source of candidate references
        max_attempts: Candidates tried before giving up
    """

    def __init__(
        self,
        exists: Callable[[str], Awaitable[bool]],
        generator: Callable[[], str] = generate_reference,
        max_attempts: int = MAX_ALLOCATION_ATTEMPTS,
    ):
        self._exists = exists
        self._generator = generator
        self.max_attempts = max_attempts

    async def allocate(self) -> str:
        """Return an unused reference

        Raises:
            AllocationExhausted: If every candidate was already taken
        """
        for attempt in range(1, self.max_attempts + 1):
            ref = self._generator()
            if not await self._exists(ref):
                return ref
            logger.warning(
                f"Reference collision on attempt {attempt}/{self.max_attempts}",
                extra={"ref": ref},
            )

        raise AllocationExhausted("Could not allocate a reference. Please try again.")
