from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..cards.expiration import is_usable
from ..cards.repository import CardRepository
from ..common.clock import Clock
from ..common.datetime_utils import add_days, month_start, parse_iso_date, require_iso_date
from ..common.validators import require_int_range
from ..core.constants import (
    DEFAULT_SUMMARY_MONTHS,
    DEFAULT_TREND_DAYS,
    EXPIRING_SOON_DAYS,
    LOW_BALANCE_THRESHOLD,
)
from ..checkins.repository import CheckInRepository

EPOCH_DAY = "1970-01-01"


@dataclass(frozen=True)
class DashboardStats:
    check_ins_today: int
    birthday_check_ins_today: int
    active_cards: int
    cards_issued_today: int
    revenue_today: Decimal
    revenue_this_month: Decimal
    tips_this_month: Decimal
    expiring_soon: list[dict]
    low_balance: list[dict]


class AnalyticsService:
    """Read-only reporting over cards and check-ins."""

    def __init__(self, cards: CardRepository, check_ins: CheckInRepository, clock: Clock):
        self._cards = cards
        self._check_ins = check_ins
        self._clock = clock

    def dashboard(self, today: Optional[str] = None) -> DashboardStats:
        today = today or self._clock.today_iso()
        first_of_month = month_start(today)
        soon = add_days(today, EXPIRING_SOON_DAYS)

        check_ins = self._check_ins.list_between(start_date=today, end_date=today)
        sold_this_month = self._cards.list_purchased_between(start_date=first_of_month, end_date=today)
        sold_today = [c for c in sold_this_month if c.purchase_date == today]
        live = [c for c in self._cards.list_unexpired(today=today) if is_usable(c, today)]

        expiring_soon = [
            {
                "card_id": c.card_id,
                "owner": str(c.owner),
                "card_name": c.card_name,
                "expiration_date": c.expiration_date,
            }
            for c in sorted(live, key=lambda c: (c.expiration_date, c.card_id))
            if c.expiration_date <= soon
        ]
        low_balance = [
            {
                "card_id": c.card_id,
                "owner": str(c.owner),
                "card_name": c.card_name,
                "classes_remaining": c.classes_remaining,
            }
            for c in sorted(live, key=lambda c: (c.classes_remaining, c.card_id))
            if not c.is_subscription and c.classes_remaining <= LOW_BALANCE_THRESHOLD
        ]

        return DashboardStats(
            check_ins_today=len(check_ins),
            birthday_check_ins_today=sum(1 for r in check_ins if r.is_birthday_check_in),
            active_cards=len(live),
            cards_issued_today=len(sold_today),
            revenue_today=sum((c.amount_paid for c in sold_today), Decimal("0.00")),
            revenue_this_month=sum((c.amount_paid for c in sold_this_month), Decimal("0.00")),
            tips_this_month=sum((c.tip_amount for c in sold_this_month), Decimal("0.00")),
            expiring_soon=expiring_soon,
            low_balance=low_balance,
        )

    def revenue_by_card_type(self, *, start_date: Optional[str] = None, end_date: Optional[str] = None) -> list[dict]:
        """Cards sold and revenue per product, highest revenue first."""

        cards = self._cards.list_purchased_between(
            start_date=require_iso_date(start_date, "Start date") if start_date else EPOCH_DAY,
            end_date=require_iso_date(end_date, "End date") if end_date else self._clock.today_iso(),
        )
        by_type: dict[int, dict] = {}
        for c in cards:
            row = by_type.get(c.card_type_id)
            if not row:
                row = {
                    "card_type_id": c.card_type_id,
                    "card_name": c.card_name,
                    "cards_sold": 0,
                    "revenue": Decimal("0.00"),
                    "tips": Decimal("0.00"),
                }
                by_type[c.card_type_id] = row
            row["cards_sold"] += 1
            row["revenue"] += c.amount_paid
            row["tips"] += c.tip_amount

        out = list(by_type.values())
        out.sort(key=lambda r: (r["revenue"], r["cards_sold"]), reverse=True)
        return out

    def attendance_trend(self, days: int = DEFAULT_TREND_DAYS) -> list[dict]:
        """Check-ins per day for the last ``days`` days, oldest first, zero-filled."""

        days = require_int_range(days, "Days", min_value=1, max_value=366)
        today = self._clock.today_iso()
        start = add_days(today, -(days - 1))

        counts: dict[str, int] = defaultdict(int)
        birthdays: dict[str, int] = defaultdict(int)
        for r in self._check_ins.list_between(start_date=start, end_date=today):
            counts[r.checked_in_on] += 1
            if r.is_birthday_check_in:
                birthdays[r.checked_in_on] += 1

        out = []
        for i in range(days):
            day = add_days(start, i)
            out.append({"date": day, "check_ins": counts[day], "birthday_check_ins": birthdays[day]})
        return out

    def monthly_summary(self, months: int = DEFAULT_SUMMARY_MONTHS) -> list[dict]:
        """Per calendar month: cards sold, revenue, tips, check-ins. Newest first."""

        months = require_int_range(months, "Months", min_value=1, max_value=60)
        today = self._clock.today_iso()
        start = month_start(today, months_back=months - 1)

        rows: dict[str, dict] = {}
        for i in range(months):
            key = month_start(today, months_back=i)[:7]
            rows[key] = {
                "month": key,
                "cards_sold": 0,
                "revenue": Decimal("0.00"),
                "tips": Decimal("0.00"),
                "check_ins": 0,
                "unique_visitors": set(),
            }

        for c in self._cards.list_purchased_between(start_date=start, end_date=today):
            row = rows.get(c.purchase_date[:7])
            if row:
                row["cards_sold"] += 1
                row["revenue"] += c.amount_paid
                row["tips"] += c.tip_amount

        for r in self._check_ins.list_between(start_date=start, end_date=today):
            row = rows.get(r.checked_in_on[:7])
            if row:
                row["check_ins"] += 1
                row["unique_visitors"].add(str(r.owner))

        out = []
        for row in rows.values():
            row["unique_visitors"] = len(row["unique_visitors"])
            out.append(row)
        out.sort(key=lambda r: parse_iso_date(r["month"] + "-01"), reverse=True)
        return out
