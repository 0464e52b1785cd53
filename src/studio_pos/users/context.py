from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..owners.model import Owner


@dataclass(frozen=True)
class RequestContext:
    """Identity of whoever is making the current request.

    Built once per request by the API layer and passed explicitly into
    every service call.
    """

    user_id: int
    role: Role
    full_name: str = ""

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.STAFF, Role.ADMIN)

    def require_staff(self) -> None:
        if not self.is_staff:
            raise AuthorizationError("Staff access required")

    def require_admin(self) -> None:
        if self.role != Role.ADMIN:
            raise AuthorizationError("Admin access required")

    def _owns(self, owner: Owner) -> bool:
        if owner.primary_user_id is not None:
            return owner.primary_user_id == self.user_id
        return owner.ref.owner_id == self.user_id

    def require_can_act_for(self, owner: Owner) -> None:
        """Staff act for anyone; customers only for themselves and their family."""

        if self.is_staff or self._owns(owner):
            return
        raise AuthorizationError("You can only manage your own cards")

    def require_self_or_admin(self, owner: Owner) -> None:
        """Profile edits: the account holder or an admin, not front-desk staff."""

        if self.role == Role.ADMIN or (self.role == Role.CUSTOMER and self._owns(owner)):
            return
        raise AuthorizationError("You can only edit your own profile")
