from __future__ import annotations

import logging
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ValidationError
from .context import RequestContext
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Use case: log in and rebuild the request identity."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> RequestContext:
        user = self._users.get_by_email((email or "").strip())
        if not user or not user.is_active:
            logger.info("Login failed for %s", email)
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder or corrupted hash in the row
            ok = False

        if not ok:
            logger.info("Login failed for %s", email)
            raise AuthenticationError("Invalid email or password")

        return RequestContext(user_id=user.user_id, role=user.role, full_name=user.full_name)

    def context_for(self, user_id: int) -> RequestContext:
        """Rebuild identity from a session id; inactive accounts are rejected."""

        user = self._users.get_by_id(int(user_id))
        if not user or not user.is_active:
            raise AuthenticationError("Session is no longer valid")
        return RequestContext(user_id=user.user_id, role=user.role, full_name=user.full_name)


class UserService:
    """Use case: manage staff accounts (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def create_account(
        self,
        ctx: RequestContext,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        role: Role,
        phone: Optional[str] = None,
    ) -> int:
        ctx.require_admin()
        first_name = require_non_empty(first_name, "First name")
        last_name = require_non_empty(last_name, "Last name")
        email = require_non_empty(email, "Email").lower()
        require_min_length(password, "Password", 8)

        if "@" not in email:
            raise ValidationError("Email is not valid")
        if self._users.get_by_email(email):
            raise ValidationError("Email is already registered")

        user_id = self._users.create_user(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
            phone=(phone or "").strip() or None,
        )
        logger.info("Admin %s created %s account %s", ctx.user_id, role.value, user_id)
        return user_id

    def create_staff(self, ctx: RequestContext, **fields) -> int:
        return self.create_account(ctx, role=Role.STAFF, **fields)

    def set_active(self, ctx: RequestContext, user_id: int, *, is_active: bool) -> bool:
        ctx.require_admin()
        if int(user_id) == ctx.user_id and not is_active:
            raise ValidationError("You cannot deactivate your own account")
        return self._users.set_active(int(user_id), is_active=is_active)

    def list_staff(self, ctx: RequestContext) -> Sequence[User]:
        ctx.require_admin()
        return self._users.list_staff()
