from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..core.enums import CardCategory, CardStatus, IssuedVia
from ..owners.model import OwnerRef


@dataclass(frozen=True)
class CardType:
    """Catalog entry: a punch card bundle or a monthly subscription.

    ``class_count == 0`` means unlimited classes (subscription).
    """

    card_type_id: int
    name: str
    class_count: int
    expiration_months: int
    price: Decimal
    price_per_class: Decimal
    category: CardCategory = CardCategory.PUNCH_CARD
    description: Optional[str] = None
    is_active: bool = True

    @property
    def is_subscription(self) -> bool:
        return self.category == CardCategory.SUBSCRIPTION or self.class_count == 0


@dataclass(frozen=True)
class CardInstance:
    """Domain entity: one card issued to one owner.

    Dates are ``YYYY-MM-DD`` strings in the studio's local calendar.
    """

    card_id: int
    owner: OwnerRef
    card_type_id: int
    card_name: str
    total_classes: int
    classes_remaining: int
    purchase_date: str
    expiration_date: str
    amount_paid: Decimal
    status: CardStatus
    issued_via: IssuedVia
    tip_amount: Decimal = Decimal("0.00")
    payment_reference: Optional[str] = None
    created_by: Optional[int] = None

    @property
    def is_subscription(self) -> bool:
        return self.total_classes == 0

    @property
    def is_exhausted(self) -> bool:
        return not self.is_subscription and (self.classes_remaining <= 0 or self.status == CardStatus.EXHAUSTED)
