"""
Authentication and Authorization for Fundbook.

Supports:
- Username/password credentials (bcrypt)
- CSRF token issuance for the double-submit cookie
- Role policies evaluated against the request context
- Role-based authorization dependencies
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Literal, Optional, Union

import bcrypt
import structlog
from fastapi import Depends

from app.core.errors import Forbidden
from app.core.tenancy import RequestContext, get_request_context
from app.models.membership import Membership
from app.models.user import User
from fundbook_shared.schemas.common import DEFAULT_ALLOWED_ROLES, UserRole

log = structlog.get_logger()

ANY_AUTHENTICATED = "any-authenticated"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Role policies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RolePolicy:
    """Which roles a route admits.

    ``required_roles`` is either an explicit role set or ``"any-authenticated"``.
    With ``allow_superadmin_override`` a global SUPERADMIN passes regardless.
    """

    required_roles: Union[frozenset[UserRole], Literal["any-authenticated"]]
    allow_superadmin_override: bool = True

    @classmethod
    def from_roles(cls, allowed_roles: Optional[Iterable[UserRole]] = None) -> "RolePolicy":
        """Policy for a plain role list; None or empty means the baseline roles."""
        roles = frozenset(UserRole(r) for r in (allowed_roles or ()))
        return cls(required_roles=roles or DEFAULT_ALLOWED_ROLES)

    def admits(self, role: UserRole) -> bool:
        if self.required_roles == ANY_AUTHENTICATED:
            return True
        return role in self.required_roles


MEMBER_POLICY = RolePolicy(required_roles=ANY_AUTHENTICATED)
ADMIN_POLICY = RolePolicy(required_roles=frozenset({UserRole.ADMIN}))
SUPERADMIN_POLICY = RolePolicy(required_roles=frozenset({UserRole.SUPERADMIN}))


def effective_role(user: User, membership: Optional[Membership]) -> UserRole:
    """The role gates evaluate: per-org membership role, else the global role."""
    if membership is not None:
        return UserRole(membership.role)
    return UserRole(user.role)


def check_role(user: User, membership: Optional[Membership], policy: RolePolicy) -> UserRole:
    """Return the role that satisfied ``policy``; raise Forbidden otherwise."""
    role = effective_role(user, membership)
    if policy.allow_superadmin_override and UserRole.SUPERADMIN in (UserRole(user.role), role):
        return UserRole.SUPERADMIN

    if policy.admits(role):
        return role

    log.info("auth.role_denied", user_id=str(user.id), role=role.value)
    raise Forbidden()


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------

def require_role(
    policy: Union[RolePolicy, Iterable[UserRole], None] = None,
) -> Callable[..., Awaitable[RequestContext]]:
    """Build a dependency that resolves the request context and enforces ``policy``."""
    if not isinstance(policy, RolePolicy):
        policy = RolePolicy.from_roles(policy)

    async def dependency(
        ctx: RequestContext = Depends(get_request_context),
    ) -> RequestContext:
        check_role(ctx.user, ctx.membership, policy)
        return ctx

    return dependency


# Any org member can access this endpoint.
require_user = require_role(MEMBER_POLICY)

# Requires the ADMIN role in the active org.
require_admin = require_role(ADMIN_POLICY)

# Requires a global SUPERADMIN.
require_super_admin = require_role(SUPERADMIN_POLICY)
