from __future__ import annotations

from datetime import date

from ..common.datetime_utils import birthday_month_day
from ..owners.model import Owner


def is_birthday(owner: Owner, today: date) -> bool:
    """True when the owner's stored month and day match ``today``.

    The birth year is ignored. A Feb 29 birthday only matches on Feb 29.
    """

    month_day = birthday_month_day(owner.birthday)
    return month_day is not None and month_day == (today.month, today.day)


def is_birthday_eligible(owner: Owner, today: date, *, used_today: bool) -> bool:
    return is_birthday(owner, today) and not used_today
