from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account role used for permission checks."""

    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


class OwnerType(str, Enum):
    USER = "user"
    FAMILY_MEMBER = "family_member"


class CardCategory(str, Enum):
    PUNCH_CARD = "punch_card"
    SUBSCRIPTION = "subscription"


class CardStatus(str, Enum):
    """Card status as stored in the database."""

    ACTIVE = "active"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


class IssuedVia(str, Enum):
    ONLINE_PAYMENT = "online_payment"
    ADMIN_CASH = "admin_cash"


class PaymentStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class DenialReason(str, Enum):
    """Why a check-in was refused. The value is shown to staff as-is."""

    NOT_BIRTHDAY = "not birthday"
    BIRTHDAY_ALREADY_USED = "already used today"
    NO_ACTIVE_CARD = "no active card"
    CARD_EXPIRED = "card expired"
    NO_CLASSES_REMAINING = "no classes remaining"


class CheckInMutation(str, Enum):
    """State change that follows an allowed check-in."""

    NONE = "none"
    BIRTHDAY_RECORD = "birthday_record"
    RECORD_ONLY = "record_only"
    DECREMENT_AND_RECORD = "decrement_and_record"
