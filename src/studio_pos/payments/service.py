from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from ..cards.catalog import CardCatalogService
from ..cards.ledger import CardLedgerService
from ..cards.model import CardInstance
from ..core.constants import DEFAULT_TAX_RATE
from ..core.exceptions import PaymentError, ValidationError
from ..owners.model import OwnerRef
from ..owners.repository import OwnerRepository
from ..users.context import RequestContext
from .gateway import PaymentGateway
from .model import PriceBreakdown
from .pricing import quote

logger = logging.getLogger(__name__)


class CheckoutService:
    """Use case: buy a card online (charge first, then issue)."""

    def __init__(
        self,
        gateway: PaymentGateway,
        catalog: CardCatalogService,
        ledger: CardLedgerService,
        owners: OwnerRepository,
        *,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
    ):
        self._gateway = gateway
        self._catalog = catalog
        self._ledger = ledger
        self._owners = owners
        self._tax_rate = Decimal(tax_rate)

    def quote(self, card_type_id: int, *, tip_cents: int = 0) -> PriceBreakdown:
        return quote(self._catalog.get_for_sale(card_type_id), tax_rate=self._tax_rate, tip_cents=tip_cents)

    def purchase(
        self,
        ctx: RequestContext,
        owner_ref: OwnerRef,
        card_type_id: int,
        source_id: str,
        *,
        tip_cents: int = 0,
    ) -> CardInstance:
        owner = self._owners.get(owner_ref)
        if not owner:
            raise ValidationError("Customer not found")
        ctx.require_can_act_for(owner)

        if not (source_id or "").strip():
            raise ValidationError("Payment token is required")

        card_type = self._catalog.get_for_sale(card_type_id)
        if self._ledger.active_card(owner_ref):
            raise ValidationError("Cannot purchase a new card while an active card exists")

        price = quote(card_type, tax_rate=self._tax_rate, tip_cents=tip_cents)
        note = f"Punch card purchase - {card_type.name}"
        if price.tip_cents:
            note += f" (includes ${price.tip_cents / 100:.2f} tip)"

        confirmation = self._gateway.charge(
            source_id=source_id.strip(),
            amount_cents=price.subtotal_cents + price.tax_cents,
            tip_cents=price.tip_cents,
            idempotency_key=str(uuid.uuid4()),
            note=note,
            buyer_email=owner.email,
        )
        if not confirmation.succeeded:
            raise PaymentError(confirmation.error or "Payment was not completed")

        try:
            return self._ledger.issue_card(ctx, owner_ref, card_type, confirmation)
        except Exception:
            logger.error("Payment %s captured but card was not issued for %s", confirmation.payment_id, owner_ref)
            raise
