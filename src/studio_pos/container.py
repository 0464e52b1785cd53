from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .analytics.service import AnalyticsService
from .cards.catalog import CardCatalogService
from .cards.ledger import CardLedgerService
from .cards.mysql_card_repository import MySQLCardRepository, MySQLCardTypeRepository
from .cards.repository import CardRepository, CardTypeRepository
from .checkins.mysql_check_in_repository import MySQLCheckInRepository
from .checkins.repository import CheckInRepository
from .checkins.service import CheckInService
from .common.clock import Clock, StudioClock
from .core.constants import DEFAULT_TAX_RATE, DEFAULT_TIMEZONE
from .database.connection import DBConfig, DatabaseConnection
from .owners.mysql_owner_repository import MySQLOwnerRepository
from .owners.repository import OwnerRepository
from .owners.service import CustomerService, OwnerService
from .payments.gateway import PaymentGateway, SquarePaymentGateway
from .payments.service import CheckoutService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    clock: Clock

    users_repo: UserRepository
    owners_repo: OwnerRepository
    card_types_repo: CardTypeRepository
    cards_repo: CardRepository
    check_ins_repo: CheckInRepository

    auth_service: AuthService
    user_service: UserService
    owner_service: OwnerService
    customer_service: CustomerService
    catalog_service: CardCatalogService
    ledger_service: CardLedgerService
    check_in_service: CheckInService
    checkout_service: CheckoutService
    analytics_service: AnalyticsService


def assemble(
    *,
    clock: Clock,
    users_repo: UserRepository,
    owners_repo: OwnerRepository,
    card_types_repo: CardTypeRepository,
    cards_repo: CardRepository,
    check_ins_repo: CheckInRepository,
    gateway: PaymentGateway,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> Container:
    """Wire services on top of whatever repositories are given."""

    catalog_service = CardCatalogService(card_types_repo)
    ledger_service = CardLedgerService(cards_repo, catalog_service, owners_repo, clock)
    owner_service = OwnerService(owners_repo)

    return Container(
        clock=clock,
        users_repo=users_repo,
        owners_repo=owners_repo,
        card_types_repo=card_types_repo,
        cards_repo=cards_repo,
        check_ins_repo=check_ins_repo,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        owner_service=owner_service,
        customer_service=CustomerService(owners_repo, cards_repo, owner_service, clock),
        catalog_service=catalog_service,
        ledger_service=ledger_service,
        check_in_service=CheckInService(check_ins_repo, cards_repo, owners_repo, clock),
        checkout_service=CheckoutService(gateway, catalog_service, ledger_service, owners_repo, tax_rate=tax_rate),
        analytics_service=AnalyticsService(cards_repo, check_ins_repo, clock),
    )


def build_container(
    *,
    db_config: dict,
    timezone: str = DEFAULT_TIMEZONE,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    square_access_token: str = "",
    square_location_id: str = "",
    square_environment: str = "sandbox",
    clock: Optional[Clock] = None,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    if not square_access_token or not square_location_id:
        logger.warning("Square credentials are not configured; online purchases will be declined")

    return assemble(
        clock=clock or StudioClock(timezone),
        users_repo=MySQLUserRepository(conn),
        owners_repo=MySQLOwnerRepository(conn),
        card_types_repo=MySQLCardTypeRepository(conn),
        cards_repo=MySQLCardRepository(conn),
        check_ins_repo=MySQLCheckInRepository(conn),
        gateway=SquarePaymentGateway(
            access_token=square_access_token,
            location_id=square_location_id,
            environment=square_environment,
        ),
        tax_rate=tax_rate,
    )
