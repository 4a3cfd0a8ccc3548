"""
auth/bearer.py -- BearerAuthenticator: Authorization header -> AccessClaims.

Structural checks run before any cryptography. The header must be exactly
"Bearer <token>": present, non-blank, two single-space-separated parts, the
literal scheme "Bearer" (case-sensitive), and a non-blank token. Any
structural failure is a ValidationError so callers can tell a malformed
request apart from an untrusted credential (AuthenticationError from the
codec).

Layer rule: no framework imports. auth/dependencies.py adapts this to FastAPI.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.authorization import is_allowed
from auth.models import AccessClaims, Role
from auth.tokens import TokenCodec
from core.errors import AuthenticationError, ValidationError
from core.result import Err, Result

BEARER_SCHEME = "Bearer"

_FIELD = "authorization"
_FORMAT_MESSAGE = "Invalid Authorization header format. Expected: Bearer <token>"


class BearerAuthenticator:
    def __init__(self, codec: TokenCodec) -> None:
        self.codec = codec

    def authenticate(
        self, authorization_header: str | None
    ) -> Result[AccessClaims, ValidationError | AuthenticationError]:
        """Parse the header and verify the access token it carries."""
        if authorization_header is None or not authorization_header.strip():
            return Err(ValidationError(field=_FIELD, message="Missing Authorization header"))

        parts = authorization_header.split(" ")
        if len(parts) != 2:
            return Err(ValidationError(field=_FIELD, message=_FORMAT_MESSAGE))

        scheme, token = parts
        if scheme != BEARER_SCHEME or not token.strip():
            return Err(ValidationError(field=_FIELD, message=_FORMAT_MESSAGE))

        return self.codec.verify_access(token)

    @staticmethod
    def has_role(identity: AccessClaims | None, allowed_roles: Iterable[Role | str]) -> bool:
        return is_allowed(identity, allowed_roles)
