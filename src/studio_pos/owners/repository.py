from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Owner, OwnerRef


class OwnerRepository(Protocol):
    """Repository interface for customers and family members.

    Services depend on this interface, not on a concrete database.
    """

    def get(self, ref: OwnerRef) -> Optional[Owner]:
        raise NotImplementedError

    def get_by_qr_code(self, qr_code: str) -> Optional[Owner]:
        raise NotImplementedError

    def get_by_check_in_code(self, code: str) -> Optional[Owner]:
        raise NotImplementedError

    def search(self, query: str, *, limit: int = 20) -> Sequence[Owner]:
        raise NotImplementedError

    def check_in_code_exists(self, code: str) -> bool:
        raise NotImplementedError

    def set_identifiers(self, ref: OwnerRef, *, qr_code: str, check_in_code: str) -> bool:
        raise NotImplementedError

    def email_exists(self, email: str) -> bool:
        raise NotImplementedError

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
        raise NotImplementedError

    def update_profile(
        self,
        ref: OwnerRef,
        *,
        first_name: str,
        last_name: str,
        birthday: Optional[str],
        phone: Optional[str] = None,
    ) -> bool:
        """Family members have no phone of their own; ``phone`` is ignored for them."""
        raise NotImplementedError

    def add_family_member(
        self,
        *,
        primary_user_id: int,
        first_name: str,
        last_name: str,
        birthday: Optional[str],
    ) -> int:
        raise NotImplementedError

    def delete_family_member(self, member_id: int) -> bool:
        raise NotImplementedError

    def list_family(self, primary_user_id: int) -> Sequence[Owner]:
        raise NotImplementedError

    def list_with_birthday(self, month: int, day: int) -> Sequence[Owner]:
        raise NotImplementedError
