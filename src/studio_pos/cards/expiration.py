"""Expiration rule for issued cards.

Dates are compared as ``YYYY-MM-DD`` strings, which order the same way as
the calendar days they name. ``today`` must be the studio's local day
(see ``common.clock``); a UTC timestamp would flip the result near midnight.
"""

from __future__ import annotations

from ..core.enums import CardStatus
from .model import CardInstance


def is_expired(card: CardInstance, today: str) -> bool:
    """A card is usable through the end of its expiration day."""

    return card.status == CardStatus.EXPIRED or card.expiration_date < today


def effective_status(card: CardInstance, today: str) -> CardStatus:
    """Stored status with expiration and exhaustion applied on read."""

    if is_expired(card, today):
        return CardStatus.EXPIRED
    if card.is_exhausted:
        return CardStatus.EXHAUSTED
    return CardStatus.ACTIVE


def is_usable(card: CardInstance, today: str) -> bool:
    return effective_status(card, today) == CardStatus.ACTIVE
