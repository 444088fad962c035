"""
services/actors.py
------------------
The authenticated caller as seen by the inquiry engine.

An Actor is built once per request from the stored user record and passed
explicitly into every engine call. It has exactly two variants, tenant and
landlord; operations check capabilities against it up front instead of
comparing role strings at scattered call sites.
"""

from dataclasses import dataclass

from rentals.core.exceptions import ForbiddenError
from rentals.models.user import User, UserRole


@dataclass(frozen=True)
class Actor:
    id: str
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=UserRole(user.role))

    @property
    def is_tenant(self) -> bool:
        return self.role is UserRole.tenant

    @property
    def is_landlord(self) -> bool:
        return self.role is UserRole.landlord

    def require_tenant(self, message: str = "Only tenants can perform this action") -> None:
        if not self.is_tenant:
            raise ForbiddenError(message)

    def require_landlord(self, message: str = "Only landlords can perform this action") -> None:
        if not self.is_landlord:
            raise ForbiddenError(message)
