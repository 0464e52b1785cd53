from __future__ import annotations

from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from ..core.exceptions import ValidationError

ISO_DATE_FORMAT = "%Y-%m-%d"


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, ISO_DATE_FORMAT).date()


def require_iso_date(value: str, field_name: str) -> str:
    """Validate and normalize a user-supplied YYYY-MM-DD string."""
    try:
        return parse_iso_date((value or "").strip()).isoformat()
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)")


def add_months(iso_day: str, months: int) -> str:
    """Shift a calendar day by whole months, clamping to the end of month.

    2024-01-31 + 1 month -> 2024-02-29.
    """
    return (parse_iso_date(iso_day) + relativedelta(months=+int(months))).isoformat()


def add_days(iso_day: str, days: int) -> str:
    return (parse_iso_date(iso_day) + relativedelta(days=+int(days))).isoformat()


def month_start(iso_day: str, *, months_back: int = 0) -> str:
    d = parse_iso_date(iso_day).replace(day=1)
    return (d - relativedelta(months=months_back)).isoformat()


def birthday_month_day(birthday: str | None) -> tuple[int, int] | None:
    """Extract (month, day) from a stored birthday.

    Accepts both full dates (``1990-03-15``) and month-day values
    (``--03-15``). Anything else counts as no birthday on file.
    """

    if not birthday:
        return None
    value = birthday.strip()
    if value.startswith("--"):
        parts = value[2:].split("-")
    else:
        parts = value.split("-")[1:]
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def normalize_birthday(value: str | None, *, today: date) -> str | None:
    """Validate a birthday as ``YYYY-MM-DD`` or year-less ``--MM-DD``.

    Blank means no birthday on file. Full dates may not be in the future.
    """

    value = str(value or "").strip()
    if not value:
        return None
    if value.startswith("--"):
        try:
            month, day = (int(p) for p in value[2:].split("-"))
            # leap year so --02-29 is accepted
            date(2000, month, day)
        except ValueError:
            raise ValidationError("Birthday must be a date (YYYY-MM-DD or --MM-DD)")
        return f"--{month:02d}-{day:02d}"

    try:
        born = parse_iso_date(value)
    except ValueError:
        raise ValidationError("Birthday must be a date (YYYY-MM-DD or --MM-DD)")
    if born > today:
        raise ValidationError("Birthday cannot be in the future")
    return born.isoformat()
