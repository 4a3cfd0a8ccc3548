"""
tests/test_ports_memory.py -- In-memory CredentialStore / UserDirectory adapters.

The session tests lean on these adapters, so their contract is pinned here:
upsert by id, unique token, idempotent deletes, and the expiry sweep.
"""

from __future__ import annotations

from datetime import timedelta

from auth.models import Principal, RefreshCredential, Role, utcnow
from auth.ports import InMemoryCredentialStore, InMemoryUserDirectory
from core.errors import RepositoryError


def _credential(id: str, token: str, user_id: str = "u1", days: int = 7) -> RefreshCredential:
    return RefreshCredential.create(
        id=id,
        token=token,
        user_id=user_id,
        expires_at=utcnow() + timedelta(days=days),
    ).value


class TestInMemoryCredentialStore:
    async def test_save_and_find_by_token(self) -> None:
        store = InMemoryCredentialStore()
        credential = _credential("t1", "abc")
        assert (await store.save(credential)).ok
        found = await store.find_by_token("abc")
        assert found.ok
        assert found.value == credential

    async def test_find_missing_is_none(self) -> None:
        store = InMemoryCredentialStore()
        found = await store.find_by_token("nope")
        assert found.ok
        assert found.value is None

    async def test_save_replaces_by_id(self) -> None:
        store = InMemoryCredentialStore()
        await store.save(_credential("t1", "abc"))
        await store.save(_credential("t1", "def"))
        assert len(store) == 1
        assert (await store.find_by_token("abc")).value is None
        assert (await store.find_by_token("def")).value.id == "t1"

    async def test_duplicate_token_rejected(self) -> None:
        store = InMemoryCredentialStore()
        await store.save(_credential("t1", "abc"))
        result = await store.save(_credential("t2", "abc"))
        assert not result.ok
        assert isinstance(result.error, RepositoryError)
        assert len(store) == 1

    async def test_find_by_user_id(self) -> None:
        store = InMemoryCredentialStore()
        await store.save(_credential("t1", "a", user_id="u1"))
        await store.save(_credential("t2", "b", user_id="u1"))
        await store.save(_credential("t3", "c", user_id="u2"))
        rows = (await store.find_by_user_id("u1")).value
        assert {row.id for row in rows} == {"t1", "t2"}

    async def test_delete_by_token_reports_removal(self) -> None:
        store = InMemoryCredentialStore()
        await store.save(_credential("t1", "abc"))
        assert (await store.delete_by_token("abc")).value is True
        assert (await store.delete_by_token("abc")).value is False

    async def test_delete_by_user_id_counts(self) -> None:
        store = InMemoryCredentialStore()
        await store.save(_credential("t1", "a", user_id="u1"))
        await store.save(_credential("t2", "b", user_id="u1"))
        await store.save(_credential("t3", "c", user_id="u2"))
        assert (await store.delete_by_user_id("u1")).value == 2
        assert len(store) == 1

    async def test_delete_expired_only_removes_expired(self) -> None:
        store = InMemoryCredentialStore()
        await store.save(_credential("old", "a", days=-1))
        await store.save(_credential("new", "b", days=1))
        assert (await store.delete_expired()).value == 1
        assert (await store.find_by_token("b")).value is not None
        assert (await store.find_by_token("a")).value is None


class TestInMemoryUserDirectory:
    async def test_lookup(self) -> None:
        principal = Principal(user_id="u1", email="a@b.c", role=Role.ADMIN)
        users = InMemoryUserDirectory([principal])
        assert (await users.find_by_id("u1")).value == principal
        assert (await users.find_by_id("u2")).value is None

    async def test_remove(self) -> None:
        users = InMemoryUserDirectory([Principal(user_id="u1", email="a@b.c", role=Role.USER)])
        assert users.remove("u1") is True
        assert users.remove("u1") is False
        assert (await users.find_by_id("u1")).value is None
