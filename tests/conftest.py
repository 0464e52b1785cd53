from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from studio_pos.cards.catalog import CardCatalogService
from studio_pos.cards.ledger import CardLedgerService
from studio_pos.cards.model import CardInstance, CardType
from studio_pos.checkins.model import CheckInRecord
from studio_pos.checkins.service import CheckInService
from studio_pos.common.clock import FixedClock
from studio_pos.core.enums import CardCategory, CardStatus, IssuedVia, OwnerType, PaymentStatus, Role
from studio_pos.core.exceptions import UpstreamError
from studio_pos.owners.model import Owner, OwnerRef
from studio_pos.owners.service import CustomerService, OwnerService
from studio_pos.payments.model import PaymentConfirmation
from studio_pos.users.context import RequestContext
from studio_pos.users.model import User

ALICE = OwnerRef.user(1)
BOB = OwnerRef.user(2)
KID = OwnerRef.family_member(10)

PASSWORD = "correct horse"


class InMemoryOwners:
    def __init__(self, owners: list[Owner]):
        self.by_ref = {o.ref: o for o in owners}
        self.password_hashes: dict[int, str] = {}

    def get(self, ref: OwnerRef) -> Optional[Owner]:
        return self.by_ref.get(ref)

    def get_by_qr_code(self, qr_code: str) -> Optional[Owner]:
        return next((o for o in self.by_ref.values() if o.qr_code == qr_code), None)

    def get_by_check_in_code(self, code: str) -> Optional[Owner]:
        return next((o for o in self.by_ref.values() if o.check_in_code == code), None)

    def search(self, query: str, *, limit: int = 20):
        q = query.lower()
        hits = [
            o
            for o in self.by_ref.values()
            if q in o.full_name.lower() or q in (o.email or "").lower() or q in (o.phone or "")
        ]
        return hits[:limit]

    def check_in_code_exists(self, code: str) -> bool:
        return self.get_by_check_in_code(code) is not None

    def set_identifiers(self, ref: OwnerRef, *, qr_code: str, check_in_code: str) -> bool:
        if ref not in self.by_ref:
            return False
        self.by_ref[ref] = replace(self.by_ref[ref], qr_code=qr_code, check_in_code=check_in_code)
        return True

    def _next_id(self, owner_type) -> int:
        return max((r.owner_id for r in self.by_ref if r.owner_type == owner_type), default=0) + 1

    def email_exists(self, email: str) -> bool:
        return any((o.email or "").lower() == email.lower() for o in self.by_ref.values() if o.primary_user_id is None)

    def create_customer(self, *, first_name, last_name, email, password_hash, phone, birthday) -> int:
        ref = OwnerRef.user(self._next_id(OwnerType.USER))
        self.by_ref[ref] = Owner(ref, first_name, last_name, birthday=birthday, email=email, phone=phone)
        self.password_hashes[ref.owner_id] = password_hash
        return ref.owner_id

    def update_profile(self, ref, *, first_name, last_name, birthday, phone=None) -> bool:
        if ref not in self.by_ref:
            return False
        owner = self.by_ref[ref]
        if ref.owner_type == OwnerType.USER:
            owner = replace(owner, phone=phone)
        self.by_ref[ref] = replace(owner, first_name=first_name, last_name=last_name, birthday=birthday)
        return True

    def add_family_member(self, *, primary_user_id, first_name, last_name, birthday) -> int:
        parent = self.by_ref[OwnerRef.user(primary_user_id)]
        ref = OwnerRef.family_member(self._next_id(OwnerType.FAMILY_MEMBER))
        self.by_ref[ref] = Owner(
            ref,
            first_name,
            last_name,
            birthday=birthday,
            email=parent.email,
            phone=parent.phone,
            primary_user_id=primary_user_id,
        )
        return ref.owner_id

    def delete_family_member(self, member_id) -> bool:
        return self.by_ref.pop(OwnerRef.family_member(member_id), None) is not None

    def list_family(self, primary_user_id):
        return [o for o in self.by_ref.values() if o.primary_user_id == primary_user_id]

    def list_with_birthday(self, month, day):
        suffix = f"-{month:02d}-{day:02d}"
        return [o for o in self.by_ref.values() if (o.birthday or "").endswith(suffix)]


class InMemoryCardTypes:
    def __init__(self, types: list[CardType]):
        self.by_id = {t.card_type_id: t for t in types}

    def list_active(self):
        return [t for t in self.by_id.values() if t.is_active]

    def get_by_id(self, card_type_id: int) -> Optional[CardType]:
        return self.by_id.get(card_type_id)


class InMemoryCards:
    def __init__(self, card_types: InMemoryCardTypes):
        self._types = card_types
        self.by_id: dict[int, CardInstance] = {}
        self.lock = threading.Lock()
        self._next_id = 0

    def get_by_id(self, card_id: int) -> Optional[CardInstance]:
        return self.by_id.get(card_id)

    def list_for_owner(self, owner: OwnerRef):
        cards = [c for c in self.by_id.values() if c.owner == owner]
        return sorted(cards, key=lambda c: (c.purchase_date, c.card_id), reverse=True)

    def create(
        self,
        *,
        owner,
        card_type_id,
        total_classes,
        purchase_date,
        expiration_date,
        amount_paid,
        issued_via,
        tip_amount=Decimal("0.00"),
        payment_reference=None,
        created_by=None,
        classes_remaining=None,
        status=CardStatus.ACTIVE,
    ) -> int:
        with self.lock:
            self._next_id += 1
            card_id = self._next_id
        self.by_id[card_id] = CardInstance(
            card_id=card_id,
            owner=owner,
            card_type_id=card_type_id,
            card_name=self._types.get_by_id(card_type_id).name,
            total_classes=total_classes,
            classes_remaining=total_classes if classes_remaining is None else classes_remaining,
            purchase_date=purchase_date,
            expiration_date=expiration_date,
            amount_paid=Decimal(amount_paid),
            status=status,
            issued_via=issued_via,
            tip_amount=Decimal(tip_amount),
            payment_reference=payment_reference,
            created_by=created_by,
        )
        return card_id

    def list_purchased_between(self, *, start_date: str, end_date: str):
        cards = [c for c in self.by_id.values() if start_date <= c.purchase_date <= end_date]
        return sorted(cards, key=lambda c: c.purchase_date)

    def list_unexpired(self, *, today: str):
        return [c for c in self.by_id.values() if c.status == CardStatus.ACTIVE and c.expiration_date >= today]


class InMemoryCheckIns:
    """Mirrors the MySQL conditional update: check and decrement under one lock."""

    def __init__(self, cards: InMemoryCards):
        self._cards = cards
        self.records: list[CheckInRecord] = []
        self.birthday_uses: set[tuple[OwnerRef, str]] = set()
        self.fail_next = 0
        self.write_attempts = 0

    def _maybe_fail(self) -> None:
        self.write_attempts += 1
        if self.fail_next > 0:
            self.fail_next -= 1
            raise UpstreamError("Database error")

    def _append(self, **fields) -> CheckInRecord:
        at: datetime = fields.pop("checked_in_at")
        record = CheckInRecord(
            check_in_id=len(self.records) + 1,
            checked_in_at=at,
            checked_in_on=at.date().isoformat(),
            **fields,
        )
        self.records.append(record)
        return record

    def record_punch(self, *, card_id, owner, performed_by, checked_in_at, today, notes=None):
        with self._cards.lock:
            self._maybe_fail()
            card = self._cards.by_id.get(card_id)
            if (
                card is None
                or card.status != CardStatus.ACTIVE
                or card.total_classes <= 0
                or card.classes_remaining <= 0
                or card.expiration_date < today
            ):
                return None
            remaining = card.classes_remaining - 1
            self._cards.by_id[card_id] = replace(
                card,
                classes_remaining=remaining,
                status=CardStatus.EXHAUSTED if remaining == 0 else card.status,
            )
            return self._append(
                owner=owner,
                card_id=card_id,
                checked_in_at=checked_in_at,
                performed_by=performed_by,
                classes_remaining=remaining,
                notes=notes,
            )

    def record_unmetered(self, *, card_id, owner, performed_by, checked_in_at, notes=None):
        with self._cards.lock:
            self._maybe_fail()
            return self._append(
                owner=owner,
                card_id=card_id,
                checked_in_at=checked_in_at,
                performed_by=performed_by,
                notes=notes,
            )

    def record_birthday(self, *, owner, performed_by, checked_in_at, notes=None):
        with self._cards.lock:
            self._maybe_fail()
            key = (owner, checked_in_at.date().isoformat())
            if key in self.birthday_uses:
                return None
            self.birthday_uses.add(key)
            return self._append(
                owner=owner,
                card_id=None,
                checked_in_at=checked_in_at,
                performed_by=performed_by,
                is_birthday_check_in=True,
                notes=notes,
            )

    def has_birthday_check_in(self, owner, day):
        return (owner, day) in self.birthday_uses

    def list_for_owner(self, owner, *, limit):
        items = [r for r in self.records if r.owner == owner]
        return sorted(items, key=lambda r: r.checked_in_at, reverse=True)[:limit]

    def list_between(self, *, start_date, end_date):
        items = [r for r in self.records if start_date <= r.checked_in_on <= end_date]
        return sorted(items, key=lambda r: r.checked_in_at, reverse=True)


class InMemoryUsers:
    def __init__(self, users: list[User]):
        self.by_id = {u.user_id: u for u in users}

    def get_by_id(self, user_id):
        return self.by_id.get(user_id)

    def get_by_email(self, email):
        return next((u for u in self.by_id.values() if u.email.lower() == email.lower()), None)

    def create_user(self, *, first_name, last_name, email, password_hash, role, phone=None):
        user_id = max(self.by_id, default=0) + 1
        self.by_id[user_id] = User(user_id, first_name, last_name, email, password_hash, role, phone)
        return user_id

    def set_active(self, user_id, *, is_active):
        if user_id not in self.by_id:
            return False
        self.by_id[user_id] = replace(self.by_id[user_id], is_active=is_active)
        return True

    def list_staff(self):
        return [u for u in self.by_id.values() if u.role in (Role.STAFF, Role.ADMIN)]


class FakeGateway:
    def __init__(self):
        self.calls: list[dict] = []
        self.decline_with: Optional[str] = None
        self.raise_error: Optional[Exception] = None

    def charge(self, *, source_id, amount_cents, tip_cents, idempotency_key, note, buyer_email=None):
        self.calls.append(
            dict(
                source_id=source_id,
                amount_cents=amount_cents,
                tip_cents=tip_cents,
                idempotency_key=idempotency_key,
                note=note,
            )
        )
        if self.raise_error:
            raise self.raise_error
        if self.decline_with:
            return PaymentConfirmation(
                payment_id=None,
                status=PaymentStatus.FAILED,
                amount_paid=Decimal("0.00"),
                error=self.decline_with,
            )
        return PaymentConfirmation(
            payment_id=f"sq_{len(self.calls)}",
            status=PaymentStatus.COMPLETED,
            amount_paid=Decimal(amount_cents) / 100,
            tip_amount=Decimal(tip_cents) / 100,
        )


def _card_type(card_type_id, name, classes, months, price, category=CardCategory.PUNCH_CARD):
    return CardType(
        card_type_id=card_type_id,
        name=name,
        class_count=classes,
        expiration_months=months,
        price=Decimal(price),
        price_per_class=Decimal(price) / classes if classes else Decimal("0"),
        category=category,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 15, 10, 0, 0))


@pytest.fixture
def owners() -> InMemoryOwners:
    return InMemoryOwners(
        [
            Owner(ALICE, "Alice", "Nguyen", birthday="--03-15", email="alice@example.com", phone="555-0101",
                  check_in_code="AB2C"),
            Owner(BOB, "Bob", "Smith", birthday="1990-07-04", email="bob@example.com", phone="555-0102"),
            Owner(KID, "Kim", "Nguyen", birthday="2015-03-15", primary_user_id=1),
        ]
    )


@pytest.fixture
def card_types() -> InMemoryCardTypes:
    return InMemoryCardTypes(
        [
            _card_type(1, "Single Class", 1, 1, "25.00"),
            _card_type(2, "4 Classes Card", 4, 1, "95.00"),
            _card_type(3, "8 Classes Card", 8, 1, "150.00"),
            _card_type(6, "Hip Hop Monthly", 0, 1, "150.00", CardCategory.SUBSCRIPTION),
            _card_type(10, "Admin Pass", 1, 3, "0.00"),
        ]
    )


@pytest.fixture
def cards(card_types) -> InMemoryCards:
    return InMemoryCards(card_types)


@pytest.fixture
def check_ins(cards) -> InMemoryCheckIns:
    return InMemoryCheckIns(cards)


@pytest.fixture
def users() -> InMemoryUsers:
    return InMemoryUsers(
        [
            User(100, "Ada", "Admin", "admin@studio.local", generate_password_hash(PASSWORD), Role.ADMIN),
            User(101, "Dee", "Desk", "desk@studio.local", generate_password_hash(PASSWORD), Role.STAFF),
            User(1, "Alice", "Nguyen", "alice@example.com", generate_password_hash(PASSWORD), Role.CUSTOMER),
        ]
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def catalog(card_types) -> CardCatalogService:
    return CardCatalogService(card_types)


@pytest.fixture
def ledger(cards, catalog, owners, clock) -> CardLedgerService:
    return CardLedgerService(cards, catalog, owners, clock)


@pytest.fixture
def check_in_service(check_ins, cards, owners, clock) -> CheckInService:
    return CheckInService(check_ins, cards, owners, clock)


@pytest.fixture
def customer_service(owners, cards, clock) -> CustomerService:
    return CustomerService(owners, cards, OwnerService(owners), clock)


@pytest.fixture
def staff() -> RequestContext:
    return RequestContext(user_id=101, role=Role.STAFF, full_name="Dee Desk")


@pytest.fixture
def admin() -> RequestContext:
    return RequestContext(user_id=100, role=Role.ADMIN, full_name="Ada Admin")


@pytest.fixture
def customer() -> RequestContext:
    return RequestContext(user_id=1, role=Role.CUSTOMER, full_name="Alice Nguyen")


@pytest.fixture
def give_card(cards):
    """Put a card straight into the fake store."""

    def _give(
        owner=ALICE,
        card_type_id=2,
        *,
        total=4,
        remaining=None,
        purchase="2024-03-01",
        expires="2024-04-01",
        status=CardStatus.ACTIVE,
        amount="95.00",
    ) -> CardInstance:
        card_id = cards.create(
            owner=owner,
            card_type_id=card_type_id,
            total_classes=total,
            classes_remaining=remaining,
            purchase_date=purchase,
            expiration_date=expires,
            amount_paid=Decimal(amount),
            issued_via=IssuedVia.ONLINE_PAYMENT,
            status=status,
        )
        return cards.get_by_id(card_id)

    return _give
