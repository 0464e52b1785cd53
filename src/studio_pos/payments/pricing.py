from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..cards.model import CardType
from ..core.exceptions import ValidationError
from .model import PriceBreakdown


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(Decimal("0.01"))


def calculate_tax(subtotal_cents: int, rate: Decimal) -> int:
    return int((Decimal(int(subtotal_cents)) * Decimal(rate)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quote(card_type: CardType, *, tax_rate: Decimal, tip_cents: int = 0) -> PriceBreakdown:
    if int(tip_cents) < 0:
        raise ValidationError("Tip cannot be negative")
    subtotal = to_cents(card_type.price)
    return PriceBreakdown(
        subtotal_cents=subtotal,
        tax_cents=calculate_tax(subtotal, tax_rate),
        tip_cents=int(tip_cents),
    )
