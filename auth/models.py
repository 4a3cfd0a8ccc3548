"""
auth/models.py -- Domain dataclasses for the session lifecycle.

Pattern: frozen dataclasses. Rotation never mutates a credential; it issues a
new one and deletes the old row. RefreshCredential is the only type with a
validating factory (create() returning a Result) because it is the only one
rebuilt from untrusted storage rows.

AccessClaims and RefreshClaims are separate closed types; a refresh payload
is never accepted where an access identity is expected.

Layer rule: imports from core/ only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from core.errors import ValidationError
from core.result import Err, Ok, Result


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    USER = "USER"

    @property
    def level(self) -> int:
        """Hierarchy level; higher means more permissions."""
        return _ROLE_LEVELS[self]


_ROLE_LEVELS: dict[Role, int] = {
    Role.SUPER_ADMIN: 3,
    Role.ADMIN: 2,
    Role.USER: 1,
}


@dataclass(frozen=True)
class Principal:
    """A user as seen by the session core, returned by the user-lookup port.

    is_active=False principals are treated as absent when rotating.
    """

    user_id: str
    email: str
    role: Role
    is_active: bool = True


@dataclass(frozen=True)
class AccessClaims:
    """Verified payload of an access token -- the authenticated identity."""

    user_id: str
    email: str
    role: Role
    issuer: str
    audience: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class RefreshClaims:
    """Verified payload of a refresh token.

    token_id must equal the id of the RefreshCredential row resolved by the
    presented string; a mismatch means the token was forged or is stale.
    """

    token_id: str
    user_id: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


@dataclass(frozen=True)
class RefreshCredential:
    """One persisted refresh session row.

    id:         opaque row identifier, embedded as the tokenId claim.
    token:      the string the client presents; the lookup key.
    user_id:    owning principal.
    expires_at: absolute expiry (UTC). Rows may be stored already expired --
                they are swept or deleted on use, never eagerly.
    created_at: issuance instant (UTC).

    Build instances with create(); the plain constructor skips validation.
    """

    id: str
    token: str
    user_id: str
    expires_at: datetime
    created_at: datetime

    @classmethod
    def create(
        cls,
        id: str,
        token: str,
        user_id: str,
        expires_at: datetime,
        created_at: datetime | None = None,
    ) -> Result[RefreshCredential, ValidationError]:
        for field_name, value in (("id", id), ("token", token), ("user_id", user_id)):
            if not isinstance(value, str) or not value.strip():
                return Err(ValidationError(field=field_name, message=f"{field_name} cannot be empty"))
        if not isinstance(expires_at, datetime):
            return Err(ValidationError(field="expires_at", message="expires_at must be a datetime"))

        return Ok(
            cls(
                id=id,
                token=token,
                user_id=user_id,
                expires_at=as_utc(expires_at),
                created_at=as_utc(created_at) if created_at is not None else utcnow(),
            )
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        current = as_utc(now) if now is not None else utcnow()
        return current > self.expires_at

    def is_valid(self, now: datetime | None = None) -> bool:
        return not self.is_expired(now)
