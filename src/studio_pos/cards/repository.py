from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import IssuedVia
from ..owners.model import OwnerRef
from .model import CardInstance, CardType


class CardTypeRepository(Protocol):
    def list_active(self) -> Sequence[CardType]:
        raise NotImplementedError

    def get_by_id(self, card_type_id: int) -> Optional[CardType]:
        raise NotImplementedError


class CardRepository(Protocol):
    """Issued cards. Balance changes go through ``CheckInRepository``."""

    def get_by_id(self, card_id: int) -> Optional[CardInstance]:
        raise NotImplementedError

    def list_for_owner(self, owner: OwnerRef) -> Sequence[CardInstance]:
        """Newest first."""

        raise NotImplementedError

    def create(
        self,
        *,
        owner: OwnerRef,
        card_type_id: int,
        total_classes: int,
        purchase_date: str,
        expiration_date: str,
        amount_paid: Decimal,
        issued_via: IssuedVia,
        tip_amount: Decimal = Decimal("0.00"),
        payment_reference: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def list_purchased_between(self, *, start_date: str, end_date: str) -> Sequence[CardInstance]:
        """Cards whose purchase_date falls in [start_date, end_date]."""

        raise NotImplementedError

    def list_unexpired(self, *, today: str) -> Sequence[CardInstance]:
        """Cards with status active and expiration_date >= today."""

        raise NotImplementedError
