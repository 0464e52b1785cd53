from decimal import Decimal

from studio_pos.cards.expiration import effective_status, is_expired, is_usable
from studio_pos.cards.model import CardInstance
from studio_pos.core.enums import CardStatus, IssuedVia
from studio_pos.owners.model import OwnerRef


def _card(**overrides) -> CardInstance:
    fields = dict(
        card_id=1,
        owner=OwnerRef.user(1),
        card_type_id=2,
        card_name="4 Classes Card",
        total_classes=4,
        classes_remaining=4,
        purchase_date="2023-12-01",
        expiration_date="2024-01-01",
        amount_paid=Decimal("95.00"),
        status=CardStatus.ACTIVE,
        issued_via=IssuedVia.ONLINE_PAYMENT,
    )
    fields.update(overrides)
    return CardInstance(**fields)


def test_card_is_valid_through_its_expiration_day():
    assert is_expired(_card(), "2024-01-01") is False


def test_card_expires_the_day_after():
    assert is_expired(_card(), "2024-01-02") is True


def test_stored_expired_status_wins_over_date():
    assert is_expired(_card(status=CardStatus.EXPIRED, expiration_date="2099-01-01"), "2024-01-01") is True


def test_effective_status_reports_exhausted_before_expiry():
    card = _card(classes_remaining=0)
    assert effective_status(card, "2023-12-20") == CardStatus.EXHAUSTED
    assert is_usable(card, "2023-12-20") is False


def test_effective_status_prefers_expired_over_exhausted():
    assert effective_status(_card(classes_remaining=0), "2024-02-01") == CardStatus.EXPIRED


def test_subscription_never_exhausts():
    card = _card(total_classes=0, classes_remaining=0)
    assert card.is_subscription
    assert effective_status(card, "2023-12-20") == CardStatus.ACTIVE
