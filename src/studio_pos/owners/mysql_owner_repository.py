from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.enums import OwnerType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Owner, OwnerRef
from .repository import OwnerRepository

_USER_COLUMNS = """
    'user' AS owner_type, u.user_id AS owner_id, u.first_name, u.last_name, u.birthday,
    u.email, u.phone, u.qr_code, u.check_in_code, NULL AS primary_user_id
"""

_MEMBER_COLUMNS = """
    'family_member' AS owner_type, fm.member_id AS owner_id, fm.first_name, fm.last_name, fm.birthday,
    p.email, p.phone, fm.qr_code, fm.check_in_code, fm.primary_user_id
"""


def _to_owner(r: Dict[str, Any]) -> Owner:
    return Owner(
        ref=OwnerRef(OwnerType(r["owner_type"]), int(r["owner_id"])),
        first_name=r["first_name"],
        last_name=r["last_name"],
        birthday=r.get("birthday"),
        email=r.get("email"),
        phone=r.get("phone"),
        qr_code=r.get("qr_code"),
        check_in_code=r.get("check_in_code"),
        primary_user_id=int(r["primary_user_id"]) if r.get("primary_user_id") else None,
    )


class MySQLOwnerRepository(OwnerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _find_one(self, user_where: str, member_where: str, params: tuple) -> Optional[Owner]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS} FROM users u
                WHERE u.role='customer' AND {user_where}
                UNION ALL
                SELECT {_MEMBER_COLUMNS} FROM family_members fm
                JOIN users p ON p.user_id = fm.primary_user_id
                WHERE {member_where}
                LIMIT 1
                """,
                params + params,
            )
            r = fetchone(cur)
            return _to_owner(r) if r else None

    def get(self, ref: OwnerRef) -> Optional[Owner]:
        with db_cursor(self._conn_factory) as (_, cur):
            if ref.owner_type == OwnerType.USER:
                cur.execute(
                    f"SELECT {_USER_COLUMNS} FROM users u WHERE u.user_id=%s AND u.role='customer'",
                    (ref.owner_id,),
                )
            else:
                cur.execute(
                    f"""
                    SELECT {_MEMBER_COLUMNS} FROM family_members fm
                    JOIN users p ON p.user_id = fm.primary_user_id
                    WHERE fm.member_id=%s
                    """,
                    (ref.owner_id,),
                )
            r = fetchone(cur)
            return _to_owner(r) if r else None

    def get_by_qr_code(self, qr_code: str) -> Optional[Owner]:
        return self._find_one("u.qr_code=%s", "fm.qr_code=%s", (qr_code,))

    def get_by_check_in_code(self, code: str) -> Optional[Owner]:
        return self._find_one("u.check_in_code=%s", "fm.check_in_code=%s", (code.upper(),))

    def search(self, query: str, *, limit: int = 20) -> Sequence[Owner]:
        parts = [p for p in query.lower().split() if p]
        if not parts:
            return []

        # Every word must match some name/contact column.
        user_clauses = []
        member_clauses = []
        user_params: list[object] = []
        member_params: list[object] = []
        for part in parts:
            like = f"%{part}%"
            user_clauses.append(
                "(LOWER(u.first_name) LIKE %s OR LOWER(u.last_name) LIKE %s OR LOWER(u.email) LIKE %s OR u.phone LIKE %s)"
            )
            user_params.extend([like, like, like, like])
            member_clauses.append("(LOWER(fm.first_name) LIKE %s OR LOWER(fm.last_name) LIKE %s)")
            member_params.extend([like, like])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS} FROM users u
                WHERE u.role='customer' AND {" AND ".join(user_clauses)}
                UNION ALL
                SELECT {_MEMBER_COLUMNS} FROM family_members fm
                JOIN users p ON p.user_id = fm.primary_user_id
                WHERE {" AND ".join(member_clauses)}
                ORDER BY last_name, first_name
                LIMIT %s
                """,
                tuple(user_params + member_params + [int(limit)]),
            )
            return [_to_owner(r) for r in fetchall(cur)]

    def check_in_code_exists(self, code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 AS hit FROM users WHERE check_in_code=%s
                UNION ALL
                SELECT 1 AS hit FROM family_members WHERE check_in_code=%s
                LIMIT 1
                """,
                (code, code),
            )
            return fetchone(cur) is not None

    def set_identifiers(self, ref: OwnerRef, *, qr_code: str, check_in_code: str) -> bool:
        table, id_col = ("users", "user_id") if ref.owner_type == OwnerType.USER else ("family_members", "member_id")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {table} SET qr_code=%s, check_in_code=%s WHERE {id_col}=%s",
                (qr_code, check_in_code, ref.owner_id),
            )
            return cur.rowcount > 0

    def email_exists(self, email: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS hit FROM users WHERE LOWER(email)=%s LIMIT 1", (email.lower(),))
            return fetchone(cur) is not None

    def create_customer(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
        phone: str,
        birthday: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(first_name, last_name, email, phone, birthday, password_hash, role, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,'customer',1)
                """,
                (first_name, last_name, email, phone, birthday, password_hash),
            )
            return int(cur.lastrowid)

    def update_profile(
        self,
        ref: OwnerRef,
        *,
        first_name: str,
        last_name: str,
        birthday: Optional[str],
        phone: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if ref.owner_type == OwnerType.USER:
                cur.execute(
                    """
                    UPDATE users SET first_name=%s, last_name=%s, birthday=%s, phone=%s
                    WHERE user_id=%s AND role='customer'
                    """,
                    (first_name, last_name, birthday, phone, ref.owner_id),
                )
            else:
                cur.execute(
                    "UPDATE family_members SET first_name=%s, last_name=%s, birthday=%s WHERE member_id=%s",
                    (first_name, last_name, birthday, ref.owner_id),
                )
            changed = cur.rowcount > 0
        # MySQL reports 0 affected rows when the values did not change
        return changed or self.get(ref) is not None

    def add_family_member(
        self,
        *,
        primary_user_id: int,
        first_name: str,
        last_name: str,
        birthday: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO family_members(primary_user_id, first_name, last_name, birthday)
                VALUES(%s,%s,%s,%s)
                """,
                (primary_user_id, first_name, last_name, birthday),
            )
            return int(cur.lastrowid)

    def delete_family_member(self, member_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM family_members WHERE member_id=%s", (member_id,))
            return cur.rowcount > 0

    def list_family(self, primary_user_id: int) -> Sequence[Owner]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_MEMBER_COLUMNS} FROM family_members fm
                JOIN users p ON p.user_id = fm.primary_user_id
                WHERE fm.primary_user_id=%s
                ORDER BY fm.first_name, fm.member_id
                """,
                (primary_user_id,),
            )
            return [_to_owner(r) for r in fetchall(cur)]

    def list_with_birthday(self, month: int, day: int) -> Sequence[Owner]:
        # matches both YYYY-MM-DD and --MM-DD
        like = f"%-{int(month):02d}-{int(day):02d}"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS} FROM users u
                WHERE u.role='customer' AND u.is_active=1 AND u.birthday LIKE %s
                UNION ALL
                SELECT {_MEMBER_COLUMNS} FROM family_members fm
                JOIN users p ON p.user_id = fm.primary_user_id
                WHERE fm.birthday LIKE %s
                ORDER BY last_name, first_name
                """,
                (like, like),
            )
            return [_to_owner(r) for r in fetchall(cur)]
