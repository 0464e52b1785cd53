from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Sequence

from ..common.clock import Clock
from ..common.datetime_utils import add_months, require_iso_date
from ..common.validators import require_int_range
from ..core.constants import MAX_ADMIN_PASS_CLASSES
from ..core.enums import IssuedVia
from ..core.exceptions import PaymentError, ValidationError
from ..owners.model import OwnerRef
from ..owners.repository import OwnerRepository
from ..payments.model import PaymentConfirmation
from ..users.context import RequestContext
from .catalog import CardCatalogService
from .expiration import is_usable
from .model import CardInstance, CardType
from .repository import CardRepository

logger = logging.getLogger(__name__)


def select_check_in_card(cards: Sequence[CardInstance], today: str) -> Optional[CardInstance]:
    """Pick the card a check-in should be charged to.

    Punch cards with classes left go first, then subscriptions, each by the
    soonest expiration. When nothing is usable the newest card is returned so
    the caller can report why it was refused.
    """

    if not cards:
        return None

    usable = [c for c in cards if is_usable(c, today)]
    punch = sorted((c for c in usable if not c.is_subscription), key=lambda c: (c.expiration_date, c.card_id))
    if punch:
        return punch[0]
    subs = sorted((c for c in usable if c.is_subscription), key=lambda c: (c.expiration_date, c.card_id))
    if subs:
        return subs[0]

    return max(cards, key=lambda c: (c.purchase_date, c.card_id))


class CardLedgerService:
    """Use case: issue cards and read an owner's card history."""

    def __init__(
        self,
        cards: CardRepository,
        catalog: CardCatalogService,
        owners: OwnerRepository,
        clock: Clock,
    ):
        self._cards = cards
        self._catalog = catalog
        self._owners = owners
        self._clock = clock

    def cards_for_owner(self, owner: OwnerRef) -> Sequence[CardInstance]:
        return self._cards.list_for_owner(owner)

    def get_card(self, card_id: int) -> CardInstance:
        card = self._cards.get_by_id(int(card_id))
        if not card:
            raise ValidationError("Card not found")
        return card

    def current_card(self, owner: OwnerRef) -> Optional[CardInstance]:
        return select_check_in_card(self._cards.list_for_owner(owner), self._clock.today_iso())

    def _require_owner(self, owner: OwnerRef) -> None:
        if not self._owners.get(owner):
            raise ValidationError("Customer not found")

    def active_card(self, owner: OwnerRef) -> Optional[CardInstance]:
        """The card check-in would use, or None when nothing is usable."""

        today = self._clock.today_iso()
        card = select_check_in_card(self._cards.list_for_owner(owner), today)
        if card and is_usable(card, today):
            return card
        return None

    def issue_card(
        self,
        ctx: RequestContext,
        owner: OwnerRef,
        card_type: CardType,
        payment_proof: PaymentConfirmation,
    ) -> CardInstance:
        """Create a card after a confirmed online payment."""

        if not payment_proof.succeeded:
            raise PaymentError(payment_proof.error or "Payment was not completed")
        if not card_type.is_active:
            raise ValidationError("Invalid card type")
        self._require_owner(owner)

        existing = self.active_card(owner)
        if existing:
            raise ValidationError(
                "Cannot purchase a new card. An active card already exists"
                + ("" if existing.is_subscription else f" with {existing.classes_remaining} classes remaining")
                + ". Please use your current card or wait until it expires or is exhausted."
            )

        purchase_date = self._clock.today_iso()
        card_id = self._cards.create(
            owner=owner,
            card_type_id=card_type.card_type_id,
            total_classes=card_type.class_count,
            purchase_date=purchase_date,
            expiration_date=add_months(purchase_date, card_type.expiration_months),
            amount_paid=payment_proof.amount_paid,
            tip_amount=payment_proof.tip_amount,
            issued_via=IssuedVia.ONLINE_PAYMENT,
            payment_reference=payment_proof.payment_id,
            created_by=ctx.user_id,
        )
        logger.info("Issued card %s (%s) to %s, payment %s", card_id, card_type.name, owner, payment_proof.payment_id)
        return self.get_card(card_id)

    def issue_admin_pass(
        self,
        ctx: RequestContext,
        owner: OwnerRef,
        class_count: int,
        expiration_date: str,
        *,
        amount_paid: Decimal = Decimal("0.00"),
    ) -> CardInstance:
        """Create a cash/manual pass. Admin only; no payment check."""

        ctx.require_admin()
        self._require_owner(owner)

        classes = require_int_range(class_count, "Classes", min_value=1, max_value=MAX_ADMIN_PASS_CLASSES)
        expiration = require_iso_date(expiration_date, "Expiration date")
        today = self._clock.today_iso()
        if expiration <= today:
            raise ValidationError("Expiration date must be after today")

        amount = Decimal(str(amount_paid))
        if amount < 0:
            raise ValidationError("Amount paid cannot be negative")

        card_type = self._catalog.admin_pass_type()
        card_id = self._cards.create(
            owner=owner,
            card_type_id=card_type.card_type_id,
            total_classes=classes,
            purchase_date=today,
            expiration_date=expiration,
            amount_paid=amount,
            issued_via=IssuedVia.ADMIN_CASH,
            created_by=ctx.user_id,
        )
        logger.info("Admin %s issued pass %s (%s classes, expires %s) to %s", ctx.user_id, card_id, classes, expiration, owner)
        return self.get_card(card_id)
