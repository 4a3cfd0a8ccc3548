"""
auth/sessions.py -- SessionRotationService: the refresh-token state machine.

rotate() evaluates its checks strictly in this order and stops at the first
failure:

  1. signature/shape   codec.verify_refresh          (no store I/O on failure)
  2. resolve row       credentials.find_by_token
  3. identity binding  claims.token_id == row.id     (no mutation on failure)
  4. expiry            row.is_expired()              (row deleted, best effort)
  5. owner exists      users.find_by_id              (row deleted, best effort)
  6. issue new pair    codec.issue_access / issue_refresh
  7. persist new row   credentials.save              (failure is returned)
  8. revoke old row    credentials.delete_by_token   (failure is swallowed)

Every trust failure collapses to an AuthenticationError with the same public
message; the specific reason only reaches the log.

Steps 2-8 are independent store round-trips. Two concurrent rotations of
the same token can both pass step 5 before either reaches step 8 and each
mint a session. With claim_before_issue=True the old row is deleted right
after step 5 and the delete must report a removed row, so only one caller
wins; the loser gets an AuthenticationError.

Layer rule: depends on ports, never on a concrete store.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from auth.models import Principal, TokenPair
from auth.ports import CredentialStore, UserDirectory
from auth.tokens import TokenCodec
from core.errors import AuthenticationError, RepositoryError, ValidationError
from core.result import Err, Ok, Result

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("sessionvault.sessions")

RotateError = AuthenticationError | RepositoryError | ValidationError


class SessionRotationService:
    """Issues, rotates and revokes refresh-backed sessions.

    :param codec: Signs and verifies access/refresh JWTs.
    :param credentials: Store for refresh credential rows.
    :param users: Read-only user lookup.
    :param claim_before_issue: Delete-and-check the presented row before
        issuing a new pair, making refresh tokens strictly single-use under
        concurrent replays.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        credentials: CredentialStore,
        users: UserDirectory,
        claim_before_issue: bool = False,
    ) -> None:
        self.codec = codec
        self.credentials = credentials
        self.users = users
        self.claim_before_issue = claim_before_issue

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        credentials: CredentialStore,
        users: UserDirectory,
    ) -> SessionRotationService:
        return cls(
            codec=TokenCodec.from_settings(settings),
            credentials=credentials,
            users=users,
            claim_before_issue=settings.refresh_claim_before_issue,
        )

    # ------------------------------------------------------------------ #
    # Login (after credentials were verified elsewhere)
    # ------------------------------------------------------------------ #

    async def start_session(self, principal: Principal) -> Result[TokenPair, ValidationError | RepositoryError]:
        """Issue a fresh pair for an already-authenticated principal.

        The refresh row is persisted before the pair is returned; a token the
        server has no row for would be useless to the client.
        """
        issued = self._issue_pair(principal)
        if not issued.ok:
            return issued
        pair, credential = issued.value

        saved = await self.credentials.save(credential)
        if not saved.ok:
            return saved

        logger.info("Session started user_id=%s", principal.user_id)
        return Ok(pair)

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    async def rotate(self, presented: str) -> Result[TokenPair, RotateError]:
        """Exchange a refresh token for a new access/refresh pair.

        :param presented: The refresh token string sent by the client. It is
            both the signed JWT and the store lookup key.
        :returns: Ok(TokenPair) or Err with one of the three error kinds.
        """
        if not isinstance(presented, str) or not presented.strip():
            return Err(ValidationError(field="refresh_token", message="Refresh token is required"))

        # 1) Signature and claim shape. Garbage never reaches the store.
        verified = self.codec.verify_refresh(presented)
        if not verified.ok:
            return self._reject(verified.error.reason)
        claims = verified.value

        # 2) Resolve the persisted row.
        found = await self.credentials.find_by_token(presented)
        if not found.ok:
            return found
        row = found.value
        if row is None:
            return self._reject("token_not_found", user_id=claims.user_id)

        # 3) The signed tokenId must name the row the string resolved to.
        if row.id != claims.token_id:
            logger.warning(
                "Refresh token identity mismatch user_id=%s row_id=%s claimed_id=%s",
                claims.user_id,
                row.id,
                claims.token_id,
            )
            return Err(AuthenticationError(reason="integrity_check_failed"))

        # 4) Expiry of the server-side row.
        if row.is_expired():
            await self._discard(presented, "expired")
            return self._reject("token_expired", user_id=claims.user_id)

        # 5) The owner must still exist and be active.
        looked_up = await self.users.find_by_id(claims.user_id)
        if not looked_up.ok:
            await self._discard(presented, "owner lookup failed")
            return looked_up
        user = looked_up.value
        if user is None or not user.is_active:
            await self._discard(presented, "owner missing")
            return self._reject("user_not_found", user_id=claims.user_id)

        if self.claim_before_issue:
            claimed = await self.credentials.delete_by_token(presented)
            if not claimed.ok:
                return claimed
            if not claimed.value:
                logger.warning("Refresh token already consumed user_id=%s", user.user_id)
                return Err(AuthenticationError(reason="token_already_used"))

        # 6) Issue the new pair.
        issued = self._issue_pair(user)
        if not issued.ok:
            return issued
        pair, credential = issued.value

        # 7) Persist the new row. This one must succeed.
        saved = await self.credentials.save(credential)
        if not saved.ok:
            return saved

        # 8) Revoke the old row. Leftovers are removed by the expiry sweep.
        if not self.claim_before_issue:
            await self._discard(presented, "rotated")

        logger.info("Refresh token rotated user_id=%s", user.user_id)
        return Ok(pair)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    async def end_session(self, presented: str) -> Result[bool, RepositoryError]:
        """Revoke one refresh token. Idempotent: an unknown token is Ok(False)."""
        return await self.credentials.delete_by_token(presented)

    async def end_all_sessions(self, user_id: str) -> Result[int, RepositoryError]:
        """Revoke every refresh token owned by ``user_id``."""
        removed = await self.credentials.delete_by_user_id(user_id)
        if removed.ok:
            logger.info("Revoked %d session(s) user_id=%s", removed.value, user_id)
        return removed

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #

    async def purge_expired(self) -> Result[int, RepositoryError]:
        return await self.credentials.delete_expired()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _issue_pair(self, principal: Principal):
        issued = self.codec.issue_refresh(principal.user_id)
        if not issued.ok:
            return issued
        refresh_token, credential = issued.value
        access_token = self.codec.issue_access(principal.user_id, principal.email, principal.role)
        return Ok((TokenPair(access_token=access_token, refresh_token=refresh_token), credential))

    async def _discard(self, presented: str, why: str) -> None:
        """Best-effort delete of the presented row; a failure is logged, not returned."""
        deleted = await self.credentials.delete_by_token(presented)
        if not deleted.ok:
            logger.warning("Could not delete refresh token (%s): %s", why, deleted.error)

    @staticmethod
    def _reject(reason: str, *, user_id: str | None = None) -> Err[AuthenticationError]:
        logger.info("Refresh rejected reason=%s user_id=%s", reason, user_id)
        return Err(AuthenticationError(reason=reason))
