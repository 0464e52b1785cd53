from __future__ import annotations

import logging
from typing import Optional, Sequence

from werkzeug.security import generate_password_hash

from ..cards.expiration import is_usable
from ..cards.repository import CardRepository
from ..checkins.birthday import is_birthday
from ..common.clock import Clock
from ..common.datetime_utils import normalize_birthday
from ..common.validators import (
    capitalize_name,
    require_email,
    require_non_empty,
    require_phone,
    require_strong_password,
)
from ..core.enums import OwnerType
from ..core.exceptions import ValidationError
from ..users.context import RequestContext
from .model import Owner, OwnerRef
from .qr import generate_check_in_code, generate_qr_code_id, looks_like_check_in_code, parse_qr_code, render_qr_png
from .repository import OwnerRepository

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 100


class OwnerService:
    """Use case: find the person at the front desk and manage their identifiers."""

    def __init__(self, owners: OwnerRepository):
        self._owners = owners

    def get(self, ref: OwnerRef) -> Owner:
        owner = self._owners.get(ref)
        if not owner:
            raise ValidationError("Customer not found")
        return owner

    def resolve(self, identifier: str, *, limit: int = 20) -> Sequence[Owner]:
        """Look an owner up by QR payload, 4-character code, or name/email/phone.

        QR and code lookups fall through to a text search when nothing matches.
        """

        query = require_non_empty(identifier, "Search query")

        ref = parse_qr_code(query)
        if ref:
            owner = self._owners.get_by_qr_code(query) or self._owners.get(ref)
            if owner:
                return [owner]

        if looks_like_check_in_code(query):
            owner = self._owners.get_by_check_in_code(query.upper())
            if owner:
                return [owner]

        return list(self._owners.search(query, limit=limit))

    def resolve_one(self, identifier: str) -> Owner:
        matches = self.resolve(identifier)
        if not matches:
            raise ValidationError("Customer not found")
        if len(matches) > 1:
            raise ValidationError("Several customers match, please narrow the search")
        return matches[0]

    def issue_identifiers(self, ref: OwnerRef) -> Owner:
        """Assign a fresh QR id and a unique check-in code."""

        self.get(ref)
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_check_in_code()
            if not self._owners.check_in_code_exists(code):
                break
        else:
            raise ValidationError("Could not generate a unique check-in code")

        qr_code = generate_qr_code_id(ref)
        if not self._owners.set_identifiers(ref, qr_code=qr_code, check_in_code=code):
            raise ValidationError("Customer not found")
        logger.info("Issued identifiers for %s (code=%s)", ref, code)
        return self.get(ref)

    def qr_png(self, ref: OwnerRef) -> bytes:
        owner = self.get(ref)
        if not owner.qr_code:
            owner = self.issue_identifiers(ref)
        return render_qr_png(owner.qr_code)


class CustomerService:
    """Use case: customer sign-up, profile edits and family members."""

    def __init__(self, owners: OwnerRepository, cards: CardRepository, identifiers: OwnerService, clock: Clock):
        self._owners = owners
        self._cards = cards
        self._identifiers = identifiers
        self._clock = clock

    def _name(self, value: str, field_name: str) -> str:
        name = capitalize_name(require_non_empty(value, field_name))
        if len(name) > 100:
            raise ValidationError(f"{field_name} must be at most 100 characters")
        return name

    def _birthday(self, value: Optional[str]) -> Optional[str]:
        return normalize_birthday(value, today=self._clock.today())

    def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str,
        birthday: Optional[str] = None,
    ) -> Owner:
        """Open a customer account and give it a QR id and check-in code."""

        email = require_email(email)
        require_strong_password(password)
        first_name = self._name(first_name, "First name")
        last_name = self._name(last_name, "Last name")
        phone = require_phone(phone)
        birthday = self._birthday(birthday)

        if self._owners.email_exists(email):
            raise ValidationError("Email already registered")

        user_id = self._owners.create_customer(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=generate_password_hash(password),
            phone=phone,
            birthday=birthday,
        )
        logger.info("Registered customer %s", user_id)
        return self._identifiers.issue_identifiers(OwnerRef.user(user_id))

    def update_profile(
        self,
        ctx: RequestContext,
        ref: OwnerRef,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        birthday: Optional[str] = None,
    ) -> Owner:
        """Change only the fields given; an empty birthday clears it."""

        owner = self._identifiers.get(ref)
        ctx.require_self_or_admin(owner)

        if ref.owner_type == OwnerType.FAMILY_MEMBER and phone is not None:
            raise ValidationError("Family members do not have their own phone number")

        self._owners.update_profile(
            ref,
            first_name=owner.first_name if first_name is None else self._name(first_name, "First name"),
            last_name=owner.last_name if last_name is None else self._name(last_name, "Last name"),
            birthday=owner.birthday if birthday is None else self._birthday(birthday),
            phone=owner.phone if phone is None else require_phone(phone),
        )
        logger.info("User %s updated profile of %s", ctx.user_id, ref)
        return self._identifiers.get(ref)

    def list_family(self, ctx: RequestContext, primary_user_id: int) -> Sequence[Owner]:
        ctx.require_can_act_for(self._identifiers.get(OwnerRef.user(primary_user_id)))
        return self._owners.list_family(int(primary_user_id))

    def add_family_member(
        self,
        ctx: RequestContext,
        primary_user_id: int,
        *,
        first_name: str,
        last_name: str,
        birthday: Optional[str] = None,
    ) -> Owner:
        primary = self._identifiers.get(OwnerRef.user(primary_user_id))
        ctx.require_self_or_admin(primary)

        member_id = self._owners.add_family_member(
            primary_user_id=primary.ref.owner_id,
            first_name=self._name(first_name, "First name"),
            last_name=self._name(last_name, "Last name"),
            birthday=self._birthday(birthday),
        )
        logger.info("User %s added family member %s to %s", ctx.user_id, member_id, primary.ref)
        return self._identifiers.issue_identifiers(OwnerRef.family_member(member_id))

    def update_family_member(self, ctx: RequestContext, member_id: int, **fields) -> Owner:
        return self.update_profile(ctx, OwnerRef.family_member(member_id), **fields)

    def delete_family_member(self, ctx: RequestContext, member_id: int) -> None:
        """Remove a family member. Refused while they still hold a usable card."""

        ref = OwnerRef.family_member(member_id)
        ctx.require_self_or_admin(self._identifiers.get(ref))

        today = self._clock.today_iso()
        if any(is_usable(c, today) for c in self._cards.list_for_owner(ref)):
            raise ValidationError("Cannot remove a family member who still has an active card")

        if not self._owners.delete_family_member(ref.owner_id):
            raise ValidationError("Customer not found")
        logger.info("User %s removed family member %s", ctx.user_id, member_id)

    def todays_birthdays(self, ctx: RequestContext) -> Sequence[Owner]:
        """Customers and family members whose birthday is today (studio time)."""

        ctx.require_staff()
        today = self._clock.today()
        return [o for o in self._owners.list_with_birthday(today.month, today.day) if is_birthday(o, today)]
