from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..core.enums import PaymentStatus


@dataclass(frozen=True)
class PaymentConfirmation:
    """What the gateway reports back after a charge attempt."""

    payment_id: Optional[str]
    status: PaymentStatus
    amount_paid: Decimal
    tip_amount: Decimal = Decimal("0.00")
    receipt_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentStatus.COMPLETED and bool(self.payment_id)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal_cents: int
    tax_cents: int
    tip_cents: int

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents + self.tax_cents + self.tip_cents
