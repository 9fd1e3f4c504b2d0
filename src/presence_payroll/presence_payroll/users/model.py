from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role
from ..core.exceptions import AuthorizationError, TenantScopeError


@dataclass(frozen=True)
class User:
    """Domain entity: a staff profile.

    Note: plain data object (no DB access code).
    """

    user_id: int
    tenant_id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    is_active: bool = True


@dataclass(frozen=True)
class Actor:
    """Identity/role context every core operation runs under."""

    staff_id: int
    tenant_id: int
    role: Role

    def require_role(self, allowed, message: str = "You do not have permission") -> None:
        if self.role not in allowed:
            raise AuthorizationError(message)

    def require_tenant(self, tenant_id: int, what: str = "record") -> None:
        if int(tenant_id) != int(self.tenant_id):
            raise TenantScopeError(f"{what} belongs to tenant {tenant_id}, actor is scoped to {self.tenant_id}")
