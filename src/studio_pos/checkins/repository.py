from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..owners.model import OwnerRef
from .model import CheckInRecord


class CheckInRepository(Protocol):
    """Append-only check-in history plus the balance changes tied to it.

    Every ``record_*`` method is one transaction: the history row and any
    card/birthday mutation are committed together or not at all.
    """

    def record_punch(
        self,
        *,
        card_id: int,
        owner: OwnerRef,
        performed_by: int,
        checked_in_at: datetime,
        today: str,
        notes: Optional[str] = None,
    ) -> Optional[CheckInRecord]:
        """Decrement the card if it is active, unexpired and has classes left.

        Returns None when the conditional update matched no row.
        """

        raise NotImplementedError

    def record_unmetered(
        self,
        *,
        card_id: int,
        owner: OwnerRef,
        performed_by: int,
        checked_in_at: datetime,
        notes: Optional[str] = None,
    ) -> CheckInRecord:
        raise NotImplementedError

    def record_birthday(
        self,
        *,
        owner: OwnerRef,
        performed_by: int,
        checked_in_at: datetime,
        notes: Optional[str] = None,
    ) -> Optional[CheckInRecord]:
        """Returns None when the owner already had a birthday check-in that day."""

        raise NotImplementedError

    def has_birthday_check_in(self, owner: OwnerRef, day: str) -> bool:
        raise NotImplementedError

    def list_for_owner(self, owner: OwnerRef, *, limit: int) -> Sequence[CheckInRecord]:
        raise NotImplementedError

    def list_between(self, *, start_date: str, end_date: str) -> Sequence[CheckInRecord]:
        """Check-ins whose local day falls in [start_date, end_date], newest first."""

        raise NotImplementedError
