from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import CheckInMutation, DenialReason
from ..owners.model import OwnerRef


@dataclass(frozen=True)
class CheckInRecord:
    """Domain entity: one successful check-in. Never updated or deleted."""

    check_in_id: int
    owner: OwnerRef
    card_id: Optional[int]
    checked_in_at: datetime
    checked_in_on: str
    performed_by: int
    is_birthday_check_in: bool = False
    classes_remaining: Optional[int] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class CheckInDecision:
    allowed: bool
    reason: Optional[DenialReason] = None
    mutation: CheckInMutation = CheckInMutation.NONE

    @classmethod
    def deny(cls, reason: DenialReason) -> "CheckInDecision":
        return cls(allowed=False, reason=reason)

    @classmethod
    def allow(cls, mutation: CheckInMutation) -> "CheckInDecision":
        return cls(allowed=True, mutation=mutation)


@dataclass(frozen=True)
class CheckInResult:
    """What the front desk sees after a check-in attempt."""

    allowed: bool
    owner_name: str
    reason: Optional[DenialReason] = None
    record: Optional[CheckInRecord] = None
    card_name: Optional[str] = None
    # None when the card is unlimited or not involved
    classes_remaining: Optional[int] = None

    @property
    def message(self) -> str:
        if not self.allowed:
            return self.reason.value if self.reason else "check-in denied"
        if self.record and self.record.is_birthday_check_in:
            return "Birthday check-in - free class"
        if self.classes_remaining is None:
            return "Checked in (unlimited)"
        return f"Checked in, {self.classes_remaining} classes remaining"
