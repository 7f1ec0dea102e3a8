"""EntryStatus state machine for the postcard review lifecycle

State flow:
    received → approved | deleted | winner, and back again

Operators may move an entry between any two statuses (manual correction),
so the transition table is complete. Stricter workflows plug in through a
TransitionPolicy in lifecycle.py.
"""

from enum import Enum
from typing import Dict, List, Optional


class EntryStatus(str, Enum):
    """Review status of a submitted entry"""
    RECEIVED = "received"   # Submitted, awaiting review
    APPROVED = "approved"   # Cleared for publication
    DELETED = "deleted"     # Soft-deleted, content stays on disk
    WINNER = "winner"       # Marked as raffle winner


# Wildcard accepted by listing filters
STATUS_FILTER_ALL = "all"


ALLOWED_TRANSITIONS: Dict[EntryStatus, List[EntryStatus]] = {
    status: list(EntryStatus) for status in EntryStatus
}


def can_transition(from_status: EntryStatus, to_status: EntryStatus) -> bool:
    """Check whether the default table allows a status change

    Example:
        >>> can_transition(EntryStatus.WINNER, EntryStatus.RECEIVED)
        True
    """
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def parse_status_filter(value: Optional[str]) -> Optional[EntryStatus]:
    """Translate a listing filter value into a concrete status

    Returns None for an absent value or the "all" wildcard.

    Raises:
        ValueError: If the value names no known status
    """
    if value is None:
        return None
    value = value.strip().lower()
    if not value or value == STATUS_FILTER_ALL:
        return None
    return EntryStatus(value)
