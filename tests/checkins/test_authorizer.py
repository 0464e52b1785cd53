from decimal import Decimal

from studio_pos.cards.model import CardInstance
from studio_pos.checkins.authorizer import authorize_check_in
from studio_pos.core.enums import CardStatus, CheckInMutation, DenialReason, IssuedVia
from studio_pos.owners.model import Owner, OwnerRef

OWNER = Owner(OwnerRef.user(1), "Alice", "Nguyen", birthday="--03-15")


def _card(total=4, remaining=4, expires="2024-04-01", status=CardStatus.ACTIVE):
    return CardInstance(
        card_id=7,
        owner=OWNER.ref,
        card_type_id=2,
        card_name="card",
        total_classes=total,
        classes_remaining=remaining,
        purchase_date="2024-03-01",
        expiration_date=expires,
        amount_paid=Decimal("95.00"),
        status=status,
        issued_via=IssuedVia.ONLINE_PAYMENT,
    )


def _decide(card, *, today="2024-03-20", birthday=False, used=False):
    return authorize_check_in(OWNER, card, birthday_requested=birthday, birthday_used_today=used, today=today)


def test_punch_card_with_balance_decrements():
    decision = _decide(_card())
    assert decision.allowed
    assert decision.mutation == CheckInMutation.DECREMENT_AND_RECORD


def test_no_card_is_denied():
    assert _decide(None).reason == DenialReason.NO_ACTIVE_CARD


def test_expired_card_is_denied():
    assert _decide(_card(expires="2024-03-19")).reason == DenialReason.CARD_EXPIRED


def test_empty_punch_card_denied_even_before_expiry():
    decision = _decide(_card(remaining=0, expires="2099-12-31"))
    assert not decision.allowed
    assert decision.reason == DenialReason.NO_CLASSES_REMAINING


def test_subscription_records_without_decrement():
    decision = _decide(_card(total=0, remaining=0))
    assert decision.allowed
    assert decision.mutation == CheckInMutation.RECORD_ONLY


def test_expired_subscription_is_denied():
    assert _decide(_card(total=0, remaining=0, expires="2024-03-01")).reason == DenialReason.CARD_EXPIRED


def test_birthday_ignores_card_state():
    decision = _decide(None, today="2024-03-15", birthday=True)
    assert decision.allowed
    assert decision.mutation == CheckInMutation.BIRTHDAY_RECORD


def test_birthday_on_other_day_is_denied():
    assert _decide(_card(), today="2024-03-16", birthday=True).reason == DenialReason.NOT_BIRTHDAY


def test_birthday_second_use_is_denied():
    decision = _decide(None, today="2024-03-15", birthday=True, used=True)
    assert decision.reason == DenialReason.BIRTHDAY_ALREADY_USED
    assert decision.reason.value == "already used today"
