from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, TypeVar

from ..cards.ledger import select_check_in_card
from ..cards.model import CardInstance
from ..cards.repository import CardRepository
from ..common.clock import Clock
from ..core.constants import BIRTHDAY_NOTE, DEFAULT_HISTORY_LIMIT
from ..core.enums import CheckInMutation, DenialReason
from ..core.exceptions import CheckInFailedError, ConcurrencyConflict, UpstreamError, ValidationError
from ..owners.model import Owner, OwnerRef
from ..owners.repository import OwnerRepository
from ..users.context import RequestContext
from .authorizer import authorize_check_in
from .birthday import is_birthday_eligible
from .model import CheckInRecord, CheckInResult
from .repository import CheckInRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CheckInService:
    """Use case: check a customer in at the front desk."""

    def __init__(
        self,
        check_ins: CheckInRepository,
        cards: CardRepository,
        owners: OwnerRepository,
        clock: Clock,
    ):
        self._check_ins = check_ins
        self._cards = cards
        self._owners = owners
        self._clock = clock

    def _get_owner(self, ref: OwnerRef) -> Owner:
        owner = self._owners.get(ref)
        if not owner:
            raise ValidationError("Customer not found")
        return owner

    @staticmethod
    def _persist(write: Callable[[], T]) -> T:
        """Run a repository write, retrying once on a storage failure."""

        try:
            return write()
        except UpstreamError as e:
            logger.warning("Check-in write failed, retrying once: %s", e)
        try:
            return write()
        except UpstreamError as e:
            logger.error("Check-in write failed twice: %s", e)
            raise CheckInFailedError() from e

    def is_birthday_eligible(self, owner_ref: OwnerRef) -> bool:
        owner = self._get_owner(owner_ref)
        today = self._clock.today()
        used = self._check_ins.has_birthday_check_in(owner_ref, today.isoformat())
        return is_birthday_eligible(owner, today, used_today=used)

    def check_in(
        self,
        ctx: RequestContext,
        owner_ref: OwnerRef,
        *,
        birthday: bool = False,
        notes: Optional[str] = None,
    ) -> CheckInResult:
        """Authorize and record one check-in.

        Denials come back as ``CheckInResult(allowed=False)``. Raises
        ``CheckInFailedError`` only when the write cannot be committed.
        """

        ctx.require_staff()
        owner = self._get_owner(owner_ref)
        notes = (notes or "").strip() or None

        if birthday:
            return self._birthday_check_in(ctx, owner, notes)

        today = self._clock.today_iso()
        card = select_check_in_card(self._cards.list_for_owner(owner_ref), today)

        for attempt in (1, 2):
            decision = authorize_check_in(
                owner,
                card,
                birthday_requested=False,
                birthday_used_today=False,
                today=today,
            )
            if not decision.allowed:
                logger.info("Check-in denied for %s: %s", owner_ref, decision.reason.value)
                return self._denied(owner, decision.reason, card)

            if decision.mutation == CheckInMutation.RECORD_ONLY:
                record = self._persist(
                    lambda: self._check_ins.record_unmetered(
                        card_id=card.card_id,
                        owner=owner_ref,
                        performed_by=ctx.user_id,
                        checked_in_at=self._clock.now(),
                        notes=notes,
                    )
                )
                logger.info("Checked in %s on subscription card %s", owner_ref, card.card_id)
                return CheckInResult(allowed=True, owner_name=owner.full_name, record=record, card_name=card.card_name)

            try:
                record = self._punch(ctx, owner_ref, card, today, notes)
            except ConcurrencyConflict:
                logger.warning("Balance changed under check-in for card %s (attempt %s)", card.card_id, attempt)
                card = select_check_in_card(self._cards.list_for_owner(owner_ref), today)
                continue

            logger.info(
                "Checked in %s on card %s, %s classes remaining",
                owner_ref,
                card.card_id,
                record.classes_remaining,
            )
            return CheckInResult(
                allowed=True,
                owner_name=owner.full_name,
                record=record,
                card_name=card.card_name,
                classes_remaining=record.classes_remaining,
            )

        raise CheckInFailedError()

    def _punch(
        self,
        ctx: RequestContext,
        owner_ref: OwnerRef,
        card: CardInstance,
        today: str,
        notes: Optional[str],
    ) -> CheckInRecord:
        record = self._persist(
            lambda: self._check_ins.record_punch(
                card_id=card.card_id,
                owner=owner_ref,
                performed_by=ctx.user_id,
                checked_in_at=self._clock.now(),
                today=today,
                notes=notes,
            )
        )
        if record is None:
            raise ConcurrencyConflict(f"card {card.card_id} changed during check-in")
        return record

    def _birthday_check_in(self, ctx: RequestContext, owner: Owner, notes: Optional[str]) -> CheckInResult:
        today = self._clock.today_iso()
        used = self._check_ins.has_birthday_check_in(owner.ref, today)
        decision = authorize_check_in(
            owner,
            None,
            birthday_requested=True,
            birthday_used_today=used,
            today=today,
        )
        if not decision.allowed:
            logger.info("Birthday check-in denied for %s: %s", owner.ref, decision.reason.value)
            return self._denied(owner, decision.reason, None)

        record = self._persist(
            lambda: self._check_ins.record_birthday(
                owner=owner.ref,
                performed_by=ctx.user_id,
                checked_in_at=self._clock.now(),
                notes=notes or BIRTHDAY_NOTE,
            )
        )
        if record is None:
            return self._denied(owner, DenialReason.BIRTHDAY_ALREADY_USED, None)

        logger.info("Birthday check-in for %s", owner.ref)
        return CheckInResult(allowed=True, owner_name=owner.full_name, record=record, card_name="Birthday Free Class")

    @staticmethod
    def _denied(owner: Owner, reason: DenialReason, card: Optional[CardInstance]) -> CheckInResult:
        return CheckInResult(
            allowed=False,
            owner_name=owner.full_name,
            reason=reason,
            card_name=card.card_name if card else None,
            classes_remaining=None if card is None or card.is_subscription else card.classes_remaining,
        )

    def history_for_owner(self, owner_ref: OwnerRef, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[CheckInRecord]:
        return self._check_ins.list_for_owner(owner_ref, limit=limit)

    def today_check_ins(self, ctx: RequestContext) -> Sequence[CheckInRecord]:
        ctx.require_staff()
        today = self._clock.today_iso()
        return self._check_ins.list_between(start_date=today, end_date=today)
