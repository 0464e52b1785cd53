"""Check-in decision rules.

Pure functions: given the owner, the card picked for them and today's date,
decide whether the check-in goes ahead and which state change follows.
Persistence is done by ``CheckInService``.
"""

from __future__ import annotations

from typing import Optional

from ..cards.expiration import is_expired
from ..cards.model import CardInstance
from ..common.datetime_utils import parse_iso_date
from ..core.enums import CheckInMutation, DenialReason
from ..owners.model import Owner
from .birthday import is_birthday
from .model import CheckInDecision


def authorize_check_in(
    owner: Owner,
    card: Optional[CardInstance],
    *,
    birthday_requested: bool,
    birthday_used_today: bool,
    today: str,
) -> CheckInDecision:
    if birthday_requested:
        if not is_birthday(owner, parse_iso_date(today)):
            return CheckInDecision.deny(DenialReason.NOT_BIRTHDAY)
        if birthday_used_today:
            return CheckInDecision.deny(DenialReason.BIRTHDAY_ALREADY_USED)
        return CheckInDecision.allow(CheckInMutation.BIRTHDAY_RECORD)

    if card is None:
        return CheckInDecision.deny(DenialReason.NO_ACTIVE_CARD)

    if is_expired(card, today):
        return CheckInDecision.deny(DenialReason.CARD_EXPIRED)

    if card.is_subscription:
        return CheckInDecision.allow(CheckInMutation.RECORD_ONLY)

    if card.is_exhausted:
        return CheckInDecision.deny(DenialReason.NO_CLASSES_REMAINING)

    return CheckInDecision.allow(CheckInMutation.DECREMENT_AND_RECORD)
