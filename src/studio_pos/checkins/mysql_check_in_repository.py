from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..cards.mysql_card_repository import owner_columns, owner_from_row
from ..core.enums import CardStatus, OwnerType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, iso_day
from ..owners.model import OwnerRef
from .model import CheckInRecord
from .repository import CheckInRepository

logger = logging.getLogger(__name__)

_CHECK_IN_SELECT = """
    SELECT check_in_id, user_id, family_member_id, card_id, checked_in_at, checked_in_on,
           performed_by, is_birthday_check_in, classes_remaining, notes
    FROM check_ins
"""


def _to_record(r: Dict[str, Any]) -> CheckInRecord:
    return CheckInRecord(
        check_in_id=int(r["check_in_id"]),
        owner=owner_from_row(r),
        card_id=int(r["card_id"]) if r.get("card_id") is not None else None,
        checked_in_at=r["checked_in_at"],
        checked_in_on=iso_day(r["checked_in_on"]),
        performed_by=int(r["performed_by"]),
        is_birthday_check_in=bool(r["is_birthday_check_in"]),
        classes_remaining=int(r["classes_remaining"]) if r.get("classes_remaining") is not None else None,
        notes=r.get("notes"),
    )


def _local_naive(moment: datetime) -> datetime:
    # DATETIME columns hold the studio's wall-clock time.
    return moment.replace(tzinfo=None)


class MySQLCheckInRepository(CheckInRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _insert(
        self,
        cur,
        *,
        owner: OwnerRef,
        card_id: Optional[int],
        performed_by: int,
        checked_in_at: datetime,
        is_birthday: bool,
        classes_remaining: Optional[int],
        notes: Optional[str],
    ) -> CheckInRecord:
        user_id, family_member_id = owner_columns(owner)
        at = _local_naive(checked_in_at)
        cur.execute(
            """
            INSERT INTO check_ins(
                user_id, family_member_id, card_id, checked_in_at, checked_in_on,
                performed_by, is_birthday_check_in, classes_remaining, notes
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                user_id,
                family_member_id,
                card_id,
                at,
                at.date(),
                int(performed_by),
                1 if is_birthday else 0,
                classes_remaining,
                notes,
            ),
        )
        return CheckInRecord(
            check_in_id=int(cur.lastrowid),
            owner=owner,
            card_id=card_id,
            checked_in_at=at,
            checked_in_on=at.date().isoformat(),
            performed_by=int(performed_by),
            is_birthday_check_in=is_birthday,
            classes_remaining=classes_remaining,
            notes=notes,
        )

    def record_punch(
        self,
        *,
        card_id: int,
        owner: OwnerRef,
        performed_by: int,
        checked_in_at: datetime,
        today: str,
        notes: Optional[str] = None,
    ) -> Optional[CheckInRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            # Single-table UPDATE assigns left to right, so the CASE sees the
            # decremented balance. The row stays locked until commit.
            cur.execute(
                """
                UPDATE card_instances
                SET classes_remaining = classes_remaining - 1,
                    status = CASE WHEN classes_remaining = 0 THEN %s ELSE status END
                WHERE card_id=%s
                  AND status=%s
                  AND total_classes > 0
                  AND classes_remaining > 0
                  AND expiration_date >= %s
                """,
                (CardStatus.EXHAUSTED.value, int(card_id), CardStatus.ACTIVE.value, today),
            )
            if cur.rowcount == 0:
                return None

            cur.execute("SELECT classes_remaining FROM card_instances WHERE card_id=%s", (int(card_id),))
            remaining = int(fetchone(cur)["classes_remaining"])

            return self._insert(
                cur,
                owner=owner,
                card_id=int(card_id),
                performed_by=performed_by,
                checked_in_at=checked_in_at,
                is_birthday=False,
                classes_remaining=remaining,
                notes=notes,
            )

    def record_unmetered(
        self,
        *,
        card_id: int,
        owner: OwnerRef,
        performed_by: int,
        checked_in_at: datetime,
        notes: Optional[str] = None,
    ) -> CheckInRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._insert(
                cur,
                owner=owner,
                card_id=int(card_id),
                performed_by=performed_by,
                checked_in_at=checked_in_at,
                is_birthday=False,
                classes_remaining=None,
                notes=notes,
            )

    def record_birthday(
        self,
        *,
        owner: OwnerRef,
        performed_by: int,
        checked_in_at: datetime,
        notes: Optional[str] = None,
    ) -> Optional[CheckInRecord]:
        used_on = _local_naive(checked_in_at).date()
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                # Unique (owner_type, owner_id, used_on) keeps this to one per day.
                cur.execute(
                    "INSERT INTO birthday_uses(owner_type, owner_id, used_on) VALUES(%s,%s,%s)",
                    (owner.owner_type.value, owner.owner_id, used_on),
                )
            except IntegrityError as e:
                if e.errno != errorcode.ER_DUP_ENTRY:
                    raise
                logger.info("Birthday check-in already used today for %s", owner)
                return None
            use_id = int(cur.lastrowid)

            record = self._insert(
                cur,
                owner=owner,
                card_id=None,
                performed_by=performed_by,
                checked_in_at=checked_in_at,
                is_birthday=True,
                classes_remaining=None,
                notes=notes,
            )
            cur.execute(
                "UPDATE birthday_uses SET check_in_id=%s WHERE use_id=%s",
                (record.check_in_id, use_id),
            )
            return record

    def has_birthday_check_in(self, owner: OwnerRef, day: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT use_id FROM birthday_uses WHERE owner_type=%s AND owner_id=%s AND used_on=%s",
                (owner.owner_type.value, owner.owner_id, day),
            )
            return fetchone(cur) is not None

    def list_for_owner(self, owner: OwnerRef, *, limit: int) -> Sequence[CheckInRecord]:
        column = "user_id" if owner.owner_type == OwnerType.USER else "family_member_id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _CHECK_IN_SELECT + f" WHERE {column}=%s ORDER BY checked_in_at DESC LIMIT %s",
                (owner.owner_id, int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_between(self, *, start_date: str, end_date: str) -> Sequence[CheckInRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _CHECK_IN_SELECT + " WHERE checked_in_on BETWEEN %s AND %s ORDER BY checked_in_at DESC",
                (start_date, end_date),
            )
            return [_to_record(r) for r in fetchall(cur)]
