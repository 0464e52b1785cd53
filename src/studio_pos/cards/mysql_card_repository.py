from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from ..core.enums import CardCategory, CardStatus, IssuedVia, OwnerType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone, iso_day
from ..owners.model import OwnerRef
from .model import CardInstance, CardType
from .repository import CardRepository, CardTypeRepository

_CARD_SELECT = """
    SELECT ci.card_id, ci.user_id, ci.family_member_id, ci.card_type_id, ct.name AS card_name,
           ci.total_classes, ci.classes_remaining, ci.purchase_date, ci.expiration_date,
           ci.amount_paid, ci.tip_amount, ci.status, ci.issued_via, ci.payment_reference, ci.created_by
    FROM card_instances ci
    JOIN card_types ct ON ct.card_type_id = ci.card_type_id
"""


def owner_columns(owner: OwnerRef) -> tuple[Optional[int], Optional[int]]:
    """(user_id, family_member_id) with exactly one set."""

    if owner.owner_type == OwnerType.USER:
        return owner.owner_id, None
    return None, owner.owner_id


def owner_from_row(r: Dict[str, Any]) -> OwnerRef:
    if r.get("user_id") is not None:
        return OwnerRef.user(int(r["user_id"]))
    return OwnerRef.family_member(int(r["family_member_id"]))


def _to_card(r: Dict[str, Any]) -> CardInstance:
    return CardInstance(
        card_id=int(r["card_id"]),
        owner=owner_from_row(r),
        card_type_id=int(r["card_type_id"]),
        card_name=r["card_name"],
        total_classes=int(r["total_classes"]),
        classes_remaining=int(r["classes_remaining"]),
        purchase_date=iso_day(r["purchase_date"]),
        expiration_date=iso_day(r["expiration_date"]),
        amount_paid=as_decimal(r["amount_paid"]),
        tip_amount=as_decimal(r.get("tip_amount")),
        status=CardStatus(r["status"]),
        issued_via=IssuedVia(r["issued_via"]),
        payment_reference=r.get("payment_reference"),
        created_by=int(r["created_by"]) if r.get("created_by") else None,
    )


def _to_card_type(r: Dict[str, Any]) -> CardType:
    return CardType(
        card_type_id=int(r["card_type_id"]),
        name=r["name"],
        class_count=int(r["class_count"]),
        expiration_months=int(r["expiration_months"]),
        price=as_decimal(r["price"]),
        price_per_class=as_decimal(r["price_per_class"]),
        category=CardCategory(r["category"]),
        description=r.get("description"),
        is_active=bool(r["is_active"]),
    )


class MySQLCardTypeRepository(CardTypeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self) -> Sequence[CardType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT card_type_id, name, class_count, expiration_months, price, price_per_class,
                       category, description, is_active
                FROM card_types
                WHERE is_active=1
                ORDER BY category, class_count
                """
            )
            return [_to_card_type(r) for r in fetchall(cur)]

    def get_by_id(self, card_type_id: int) -> Optional[CardType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT card_type_id, name, class_count, expiration_months, price, price_per_class,
                       category, description, is_active
                FROM card_types
                WHERE card_type_id=%s
                """,
                (int(card_type_id),),
            )
            r = fetchone(cur)
            return _to_card_type(r) if r else None


class MySQLCardRepository(CardRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, card_id: int) -> Optional[CardInstance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_CARD_SELECT + " WHERE ci.card_id=%s", (int(card_id),))
            r = fetchone(cur)
            return _to_card(r) if r else None

    def list_for_owner(self, owner: OwnerRef) -> Sequence[CardInstance]:
        column = "ci.user_id" if owner.owner_type == OwnerType.USER else "ci.family_member_id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _CARD_SELECT + f" WHERE {column}=%s ORDER BY ci.purchase_date DESC, ci.card_id DESC",
                (owner.owner_id,),
            )
            return [_to_card(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        owner: OwnerRef,
        card_type_id: int,
        total_classes: int,
        purchase_date: str,
        expiration_date: str,
        amount_paid: Decimal,
        issued_via: IssuedVia,
        tip_amount: Decimal = Decimal("0.00"),
        payment_reference: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        user_id, family_member_id = owner_columns(owner)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO card_instances(
                    user_id, family_member_id, card_type_id, total_classes, classes_remaining,
                    purchase_date, expiration_date, amount_paid, tip_amount, status, issued_via,
                    payment_reference, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    user_id,
                    family_member_id,
                    int(card_type_id),
                    int(total_classes),
                    int(total_classes),
                    purchase_date,
                    expiration_date,
                    amount_paid,
                    tip_amount,
                    CardStatus.ACTIVE.value,
                    issued_via.value,
                    payment_reference,
                    created_by,
                ),
            )
            return int(cur.lastrowid)

    def list_purchased_between(self, *, start_date: str, end_date: str) -> Sequence[CardInstance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _CARD_SELECT + " WHERE ci.purchase_date BETWEEN %s AND %s ORDER BY ci.purchase_date",
                (start_date, end_date),
            )
            return [_to_card(r) for r in fetchall(cur)]

    def list_unexpired(self, *, today: str) -> Sequence[CardInstance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _CARD_SELECT + " WHERE ci.status=%s AND ci.expiration_date >= %s ORDER BY ci.expiration_date",
                (CardStatus.ACTIVE.value, today),
            )
            return [_to_card(r) for r in fetchall(cur)]
