"""
tests/conftest.py -- Shared fixtures for the SessionVault test suite.

This module provides:
  - codec: TokenCodec with fresh, distinct per-test secrets
  - credentials / users: in-memory port adapters
  - principal: an active USER already present in ``users``
  - service: SessionRotationService wired to the above (default mode)
  - sql_store: AuthStore on an in-memory aiosqlite database, schema created

Async tests run under pytest-asyncio (asyncio_mode = "auto" in pyproject),
so async fixtures and tests need no explicit marker.

The DEBUG env var must be set before any core/auth import so get_settings()
auto-generates the signing secrets in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import secrets
from collections.abc import AsyncIterator

# Set DEBUG before any auth/core import so get_settings() can auto-generate
# the signing secrets in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest

from auth.models import Principal, Role
from auth.ports import InMemoryCredentialStore, InMemoryUserDirectory
from auth.sessions import SessionRotationService
from auth.store import AuthStore
from auth.tokens import TokenCodec

IN_MEMORY_DB_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Token codec
# ---------------------------------------------------------------------------


def make_codec(**overrides) -> TokenCodec:
    """Build a TokenCodec with random distinct secrets; keyword overrides win."""
    kwargs = {
        "access_secret": secrets.token_hex(32),
        "refresh_secret": secrets.token_hex(32),
    }
    kwargs.update(overrides)
    return TokenCodec(**kwargs)


@pytest.fixture
def codec() -> TokenCodec:
    return make_codec()


# ---------------------------------------------------------------------------
# Ports
# ---------------------------------------------------------------------------


@pytest.fixture
def principal() -> Principal:
    return Principal(user_id="u1", email="ada@example.com", role=Role.USER)


@pytest.fixture
def credentials() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def users(principal: Principal) -> InMemoryUserDirectory:
    return InMemoryUserDirectory([principal])


@pytest.fixture
def service(
    codec: TokenCodec,
    credentials: InMemoryCredentialStore,
    users: InMemoryUserDirectory,
) -> SessionRotationService:
    return SessionRotationService(codec=codec, credentials=credentials, users=users)


# ---------------------------------------------------------------------------
# SQL store
# ---------------------------------------------------------------------------


@pytest.fixture
async def sql_store() -> AsyncIterator[AuthStore]:
    store = AuthStore(IN_MEMORY_DB_URL)
    await store.initialize()
    try:
        yield store
    finally:
        await store.close()
