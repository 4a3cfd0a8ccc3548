"""
auth/store.py -- SQLAlchemy Core persistence for refresh credentials and users.

Pattern: Repository + Data Mapper. AuthStore implements both ports from
auth/ports.py (CredentialStore and UserDirectory); _row_to_credential and
_row_to_principal are the mappers. Session code never touches SQL directly.

Async engine: every port method is a coroutine, so the store runs on
sqlalchemy.ext.asyncio with the aiosqlite driver by default. Any async
dialect works -- swapping to PostgreSQL is a URL change.

Errors: each public method catches SQLAlchemyError only and returns
Err(RepositoryError) carrying the original exception as cause. A stored row
that fails RefreshCredential.create() validation is also a RepositoryError --
corrupt storage is a persistence failure, not a caller fault.

Security:
  All queries use bound parameters. No f-strings in SQL.
  refresh_tokens.token carries a UNIQUE constraint -- the presented string
  must resolve to at most one row.

Timestamps are stored as ISO 8601 UTC text with fixed microsecond precision
so lexicographic comparison in delete_expired() matches chronological order.

Usage:
    store = AuthStore("sqlite+aiosqlite:///auth.db")
    await store.initialize()
    await store.save(credential)
    await store.close()
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from auth.models import Principal, RefreshCredential, Role, as_utc, utcnow
from core.errors import RepositoryError
from core.result import Err, Ok, Result

logger = logging.getLogger("sessionvault.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(64), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("role", String(30), nullable=False, server_default=Role.USER.value),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("id", String(64), primary_key=True),
    Column("token", Text, nullable=False, unique=True),
    Column("user_id", String(64), nullable=False),
    Column("expires_at", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
    # No FK to users: rows may outlive their owner; the rotation flow
    # detects the orphan and deletes it.
)

Index("ix_refresh_tokens_user_id", _refresh_tokens.c.user_id)
Index("ix_refresh_tokens_expires_at", _refresh_tokens.c.expires_at)


# ---------------------------------------------------------------------------
# SQLite tuning
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(value: datetime) -> str:
    return as_utc(value).isoformat(timespec="microseconds")


def _from_iso(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value))


def _failure(operation: str, message: str, exc: BaseException) -> Err[RepositoryError]:
    logger.error("Store operation %s failed: %s", operation, exc.__class__.__name__)
    return Err(RepositoryError(operation=operation, message=message, cause=exc))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AuthStore:
    """Repository for refresh credentials and the user lookup they depend on.

    Satisfies both auth.ports.CredentialStore and auth.ports.UserDirectory.
    Call initialize() once before first use to create the schema.
    """

    def __init__(self, db_url: str) -> None:
        kwargs: dict = {}
        is_sqlite = db_url.startswith("sqlite")
        if is_sqlite and (":memory:" in db_url or "mode=memory" in db_url):
            # One shared connection, otherwise each pooled connection sees a
            # blank in-memory schema.
            kwargs["poolclass"] = StaticPool
        self.engine: AsyncEngine = create_async_engine(db_url, **kwargs)
        if is_sqlite and "poolclass" not in kwargs:
            event.listen(self.engine.sync_engine, "connect", _set_wal_mode)

    async def initialize(self) -> None:
        """Create tables and indexes if they do not exist. Idempotent."""
        async with self.engine.begin() as conn:
            await conn.run_sync(_metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    # ------------------------------------------------------------------
    # CredentialStore
    # ------------------------------------------------------------------

    async def find_by_token(self, token: str) -> Result[RefreshCredential | None, RepositoryError]:
        try:
            async with self.engine.connect() as conn:
                row = (
                    await conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.token == token))
                ).fetchone()
        except SQLAlchemyError as exc:
            return _failure("find_by_token", "Failed to find refresh token by token", exc)
        if row is None:
            return Ok(None)
        return _row_to_credential(row, operation="find_by_token")

    async def find_by_user_id(self, user_id: str) -> Result[list[RefreshCredential], RepositoryError]:
        try:
            async with self.engine.connect() as conn:
                rows = (
                    await conn.execute(
                        _refresh_tokens.select()
                        .where(_refresh_tokens.c.user_id == user_id)
                        .order_by(_refresh_tokens.c.created_at)
                    )
                ).fetchall()
        except SQLAlchemyError as exc:
            return _failure("find_by_user_id", "Failed to find refresh tokens by user id", exc)

        credentials: list[RefreshCredential] = []
        for row in rows:
            mapped = _row_to_credential(row, operation="find_by_user_id")
            if not mapped.ok:
                return mapped
            credentials.append(mapped.value)
        return Ok(credentials)

    async def save(self, credential: RefreshCredential) -> Result[RefreshCredential, RepositoryError]:
        """Upsert keyed by id: UPDATE first, INSERT when no row matched.

        No ON CONFLICT clause. Both statements run in one
        transaction. A token collision with a different id raises
        IntegrityError from the UNIQUE constraint and comes back as Err.
        """
        values = {
            "token": credential.token,
            "user_id": credential.user_id,
            "expires_at": _to_iso(credential.expires_at),
            "created_at": _to_iso(credential.created_at),
        }
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(
                    _refresh_tokens.update().where(_refresh_tokens.c.id == credential.id).values(**values)
                )
                if result.rowcount == 0:
                    await conn.execute(_refresh_tokens.insert().values(id=credential.id, **values))
        except SQLAlchemyError as exc:
            return _failure("save", "Failed to save refresh token", exc)
        return Ok(credential)

    async def delete_by_token(self, token: str) -> Result[bool, RepositoryError]:
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.token == token))
        except SQLAlchemyError as exc:
            return _failure("delete_by_token", "Failed to delete refresh token by token", exc)
        return Ok(result.rowcount > 0)

    async def delete_by_user_id(self, user_id: str) -> Result[int, RepositoryError]:
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.user_id == user_id))
        except SQLAlchemyError as exc:
            return _failure("delete_by_user_id", "Failed to delete refresh tokens by user id", exc)
        return Ok(result.rowcount)

    async def delete_expired(self, now: datetime | None = None) -> Result[int, RepositoryError]:
        cutoff = _to_iso(now if now is not None else utcnow())
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.expires_at < cutoff))
        except SQLAlchemyError as exc:
            return _failure("delete_expired", "Failed to delete expired refresh tokens", exc)
        return Ok(result.rowcount)

    # ------------------------------------------------------------------
    # UserDirectory
    # ------------------------------------------------------------------

    async def find_by_id(self, user_id: str) -> Result[Principal | None, RepositoryError]:
        try:
            async with self.engine.connect() as conn:
                row = (await conn.execute(_users.select().where(_users.c.id == user_id))).fetchone()
        except SQLAlchemyError as exc:
            return _failure("find_by_id", "Failed to find user by id", exc)
        if row is None:
            return Ok(None)
        return _row_to_principal(row)

    async def add_user(self, principal: Principal) -> Result[Principal, RepositoryError]:
        """Insert a user row. Provisioning hook for the owning user service."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(
                    _users.insert().values(
                        id=principal.user_id,
                        email=principal.email,
                        role=Role(principal.role).value,
                        is_active=1 if principal.is_active else 0,
                        created_at=_to_iso(utcnow()),
                    )
                )
        except SQLAlchemyError as exc:
            return _failure("add_user", "Failed to insert user", exc)
        return Ok(principal)

    async def delete_user(self, user_id: str) -> Result[bool, RepositoryError]:
        """Delete a user row. Refresh rows owned by the user are left in place."""
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(_users.delete().where(_users.c.id == user_id))
        except SQLAlchemyError as exc:
            return _failure("delete_user", "Failed to delete user", exc)
        return Ok(result.rowcount > 0)


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_credential(row, *, operation: str) -> Result[RefreshCredential, RepositoryError]:
    try:
        expires_at = _from_iso(row.expires_at)
        created_at = _from_iso(row.created_at)
    except (TypeError, ValueError) as exc:
        return Err(RepositoryError(operation=operation, message="Stored refresh token has a bad timestamp", cause=exc))

    mapped = RefreshCredential.create(
        id=row.id,
        token=row.token,
        user_id=row.user_id,
        expires_at=expires_at,
        created_at=created_at,
    )
    if not mapped.ok:
        return Err(
            RepositoryError(
                operation=operation,
                message="Failed to map refresh token to domain",
                cause=mapped.error,
            )
        )
    return mapped


def _row_to_principal(row) -> Result[Principal, RepositoryError]:
    try:
        role = Role(row.role)
    except ValueError as exc:
        return Err(RepositoryError(operation="find_by_id", message="Stored user has an unknown role", cause=exc))
    return Ok(
        Principal(
            user_id=row.id,
            email=row.email,
            role=role,
            is_active=bool(row.is_active),
        )
    )
