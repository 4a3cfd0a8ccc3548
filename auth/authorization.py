"""
auth/authorization.py -- Role checks on an authenticated identity.

Pure functions, no I/O. Request-handling code calls these after
BearerAuthenticator has produced AccessClaims.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.models import AccessClaims, Role


def _role_value(role: Role | str) -> str:
    return role.value if isinstance(role, Role) else str(role)


def is_allowed(identity: AccessClaims | None, allowed_roles: Iterable[Role | str]) -> bool:
    """Return True if ``identity`` holds one of ``allowed_roles``.

    An absent identity is never allowed. Membership is exact -- an ADMIN is
    not implicitly allowed where only SUPER_ADMIN is listed; use
    has_minimum_role() for hierarchy checks.
    """
    if identity is None:
        return False
    allowed = {_role_value(role) for role in allowed_roles}
    return _role_value(identity.role) in allowed


def has_minimum_role(identity: AccessClaims | None, minimum: Role) -> bool:
    """Return True if ``identity``'s role is at or above ``minimum`` in the hierarchy."""
    if identity is None:
        return False
    return Role(identity.role).level >= minimum.level
