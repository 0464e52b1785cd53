from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import OwnerType


@dataclass(frozen=True)
class OwnerRef:
    """Who a card or check-in belongs to: one customer or one family member."""

    owner_type: OwnerType
    owner_id: int

    @classmethod
    def user(cls, user_id: int) -> "OwnerRef":
        return cls(OwnerType.USER, int(user_id))

    @classmethod
    def family_member(cls, member_id: int) -> "OwnerRef":
        return cls(OwnerType.FAMILY_MEMBER, int(member_id))

    def __str__(self) -> str:
        return f"{self.owner_type.value}:{self.owner_id}"


@dataclass(frozen=True)
class Owner:
    """Domain entity: a customer or a family member who can hold cards."""

    ref: OwnerRef
    first_name: str
    last_name: str
    birthday: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    qr_code: Optional[str] = None
    check_in_code: Optional[str] = None
    primary_user_id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
