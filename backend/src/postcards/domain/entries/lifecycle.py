"""Lifecycle manager: status transitions and timestamp bookkeeping

Side effects per target status, applied regardless of the origin status:

    approved  → approvedAt = now, deletedAt cleared
    deleted   → deletedAt = now (approvedAt left as is)
    received  → approvedAt and deletedAt cleared
    winner    → status only

Which transitions are permitted is decided by a TransitionPolicy. The default
policy allows everything so operators can correct mistakes by hand.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from .entry_status import EntryStatus, can_transition
from .errors import ValidationFailure
from .models import Entry
from .timestamps import truncate_to_milliseconds, utc_now


class TransitionPolicy(ABC):
    """Decides whether an entry may move from one status to another."""

    @abstractmethod
    def allows(self, current: EntryStatus, target: EntryStatus) -> bool:
        pass


class PermissiveTransitionPolicy(TransitionPolicy):
    """Every status is reachable from every other status."""

    def allows(self, current: EntryStatus, target: EntryStatus) -> bool:
        return can_transition(current, target)


class LifecycleManager:
    """Applies status transitions to entries.

    The manager never touches storage; the record store persists whatever
    apply() returns.

    Example:
        manager = LifecycleManager()
        approved = manager.apply(entry, EntryStatus.APPROVED)
        assert approved.approved_at is not None
    """

    def __init__(
        self,
        policy: Optional[TransitionPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.policy = policy or PermissiveTransitionPolicy()
        self._clock = clock

    def apply(self, entry: Entry, new_status: EntryStatus) -> Entry:
        """Return a copy of entry moved to new_status.

        Raises:
            ValidationFailure: If the policy rejects the transition (409)
        """
        new_status = EntryStatus(new_status)
        if not self.policy.allows(entry.status, new_status):
            raise ValidationFailure(
                f"Status change {entry.status.value} -> {new_status.value} is not allowed",
                status_code=409,
            )

        changes = {"status": new_status}
        now = truncate_to_milliseconds(self._clock())

        if new_status == EntryStatus.APPROVED:
            changes["approved_at"] = now
            changes["deleted_at"] = None
        elif new_status == EntryStatus.DELETED:
            changes["deleted_at"] = now
        elif new_status == EntryStatus.RECEIVED:
            changes["approved_at"] = None
            changes["deleted_at"] = None

        return entry.model_copy(update=changes)
