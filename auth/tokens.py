"""
auth/tokens.py -- TokenCodec: signs and verifies access and refresh JWTs.

Security design decisions:
  Two kinds, two secrets. Access tokens are signed with the access secret,
       refresh tokens with the refresh secret. The constructor refuses equal
       secrets, so a token of one kind never verifies as the other.

  Closed claim shapes. After the signature check the payload is validated
       against a pydantic model per kind with extra keys forbidden. An access
       payload ({userId, email, role, iss, aud, iat, exp}) and a refresh
       payload ({tokenId, userId, iat, exp}) cannot satisfy each other's model
       even if the secrets were somehow shared.

  Failures are values. verify_* never raise for a bad token; they return
       Err(AuthenticationError) with an internal reason. The public message is
       the same for every reason.

  The refresh token is the lookup key. issue_refresh() returns the signed
       string together with the RefreshCredential row to persist; the row's
       token field IS that string, and its id is the tokenId claim. The
       rotation flow checks both independently.

Secrets are explicit constructor arguments, never module globals, so tests
can build codecs with distinct keys. from_settings() is the production path.

Layer rule: imports from core/ and auth.models only.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PayloadValidationError

from auth.models import AccessClaims, RefreshClaims, RefreshCredential, Role, utcnow
from core.errors import AuthenticationError, ValidationError
from core.result import Err, Ok, Result

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("sessionvault.tokens")

_ALGORITHM = "HS256"

DEFAULT_ISSUER = "sessionvault-api"
DEFAULT_AUDIENCE = "sessionvault-app"
DEFAULT_ACCESS_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TTL = timedelta(days=7)


# ---------------------------------------------------------------------------
# Payload shapes
# ---------------------------------------------------------------------------


class _AccessPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: str = Field(alias="userId", min_length=1)
    email: str = Field(min_length=1)
    role: Role
    iss: str
    aud: str
    iat: int
    exp: int


class _RefreshPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    token_id: str = Field(alias="tokenId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
    iat: int
    exp: int


def _from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


class TokenCodec:
    """Stateless signer/verifier for the two token kinds.

    Usage:
        codec = TokenCodec(access_secret=a, refresh_secret=r)
        token = codec.issue_access("u1", "ada@example.com", Role.USER)
        result = codec.verify_access(token)
        if result.ok:
            claims = result.value
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        issuer: str = DEFAULT_ISSUER,
        audience: str = DEFAULT_AUDIENCE,
        access_ttl: timedelta = DEFAULT_ACCESS_TTL,
        refresh_ttl: timedelta = DEFAULT_REFRESH_TTL,
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ValueError("Both access_secret and refresh_secret are required.")
        if access_secret == refresh_secret:
            raise ValueError("access_secret and refresh_secret must be different.")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenCodec:
        return cls(
            access_secret=settings.jwt_secret,
            refresh_secret=settings.jwt_refresh_secret,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access(self, user_id: str, email: str, role: Role | str) -> str:
        """Sign a short-lived access token for the given identity."""
        now = utcnow()
        payload: dict[str, Any] = {
            "userId": user_id,
            "email": email,
            "role": Role(role).value,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "exp": int((now + self.access_ttl).timestamp()),
        }
        return jwt.encode(payload, self._access_secret, algorithm=_ALGORITHM)

    def issue_refresh(self, user_id: str) -> Result[tuple[str, RefreshCredential], ValidationError]:
        """Sign a refresh token and build the credential row that backs it.

        The caller is responsible for persisting the returned credential
        before handing the token to the client.
        """
        if not isinstance(user_id, str) or not user_id.strip():
            return Err(ValidationError(field="user_id", message="user_id cannot be empty"))

        now = utcnow()
        expires_at = now + self.refresh_ttl
        token_id = str(uuid.uuid4())
        payload: dict[str, Any] = {
            "tokenId": token_id,
            "userId": user_id,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._refresh_secret, algorithm=_ALGORITHM)

        created = RefreshCredential.create(
            id=token_id,
            token=token,
            user_id=user_id,
            expires_at=expires_at,
            created_at=now,
        )
        if not created.ok:
            return created
        return Ok((token, created.value))

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify_access(self, token: str) -> Result[AccessClaims, AuthenticationError]:
        decoded = self._decode(
            token,
            self._access_secret,
            audience=self.audience,
            issuer=self.issuer,
            kind="access",
        )
        if not decoded.ok:
            return decoded
        try:
            payload = _AccessPayload.model_validate(decoded.value)
        except PayloadValidationError:
            logger.debug("Access token payload has an unexpected shape")
            return Err(AuthenticationError(reason="invalid_payload"))

        return Ok(
            AccessClaims(
                user_id=payload.user_id,
                email=payload.email,
                role=payload.role,
                issuer=payload.iss,
                audience=payload.aud,
                issued_at=_from_timestamp(payload.iat),
                expires_at=_from_timestamp(payload.exp),
            )
        )

    def verify_refresh(self, token: str) -> Result[RefreshClaims, AuthenticationError]:
        decoded = self._decode(token, self._refresh_secret, audience=None, issuer=None, kind="refresh")
        if not decoded.ok:
            return decoded
        try:
            payload = _RefreshPayload.model_validate(decoded.value)
        except PayloadValidationError:
            logger.debug("Refresh token payload has an unexpected shape")
            return Err(AuthenticationError(reason="invalid_payload"))

        return Ok(
            RefreshClaims(
                token_id=payload.token_id,
                user_id=payload.user_id,
                issued_at=_from_timestamp(payload.iat),
                expires_at=_from_timestamp(payload.exp),
            )
        )

    @staticmethod
    def _decode(
        token: str,
        secret: str,
        *,
        audience: str | None,
        issuer: str | None,
        kind: str,
    ) -> Result[dict[str, Any], AuthenticationError]:
        if not isinstance(token, str) or not token:
            return Err(AuthenticationError(reason="invalid_token"))
        try:
            claims = jwt.decode(token, secret, algorithms=[_ALGORITHM], audience=audience, issuer=issuer)
        except ExpiredSignatureError:
            return Err(AuthenticationError(reason="token_expired"))
        except JWTClaimsError:
            logger.debug("%s token failed claim checks", kind)
            return Err(AuthenticationError(reason="invalid_claims"))
        except JWTError:
            return Err(AuthenticationError(reason="invalid_token"))
        if not isinstance(claims, dict):
            return Err(AuthenticationError(reason="invalid_payload"))
        return Ok(claims)
