"""
auth/ports.py -- Persistence contracts consumed by the session core.

CredentialStore   refresh-credential rows (lookup, upsert, delete, sweep).
UserDirectory     read-only user lookup by id (user CRUD lives elsewhere).

Both are typing.Protocol classes so any object with matching async methods
satisfies them -- auth/store.py (SQL) and the in-memory adapters below.
Every method returns a core.result.Result; adapters never raise for
persistence failures, they return Err(RepositoryError).

The in-memory adapters are used by unit tests and for wiring the core without
a database. They enforce the same uniqueness rule on token as the SQL schema.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from auth.models import Principal, RefreshCredential, as_utc, utcnow
from core.errors import RepositoryError
from core.result import Err, Ok, Result


class CredentialStore(Protocol):
    """Stateful store for refresh credentials.

    No method is transactional with respect to another; the rotation flow
    performs lookup, insert and delete as independent round-trips.
    """

    async def find_by_token(self, token: str) -> Result[RefreshCredential | None, RepositoryError]:
        """Return the row whose token equals ``token``, or None."""
        ...

    async def find_by_user_id(self, user_id: str) -> Result[list[RefreshCredential], RepositoryError]:
        """Return every row owned by ``user_id`` (expired rows included)."""
        ...

    async def save(self, credential: RefreshCredential) -> Result[RefreshCredential, RepositoryError]:
        """Insert or replace the row keyed by ``credential.id``."""
        ...

    async def delete_by_token(self, token: str) -> Result[bool, RepositoryError]:
        """Delete the row for ``token``. True iff a row was removed."""
        ...

    async def delete_by_user_id(self, user_id: str) -> Result[int, RepositoryError]:
        """Delete every row owned by ``user_id``. Returns the count removed."""
        ...

    async def delete_expired(self) -> Result[int, RepositoryError]:
        """Maintenance sweep. Returns the count of expired rows removed."""
        ...


class UserDirectory(Protocol):
    """Read-only user lookup."""

    async def find_by_id(self, user_id: str) -> Result[Principal | None, RepositoryError]: ...


# ---------------------------------------------------------------------------
# In-memory adapters
# ---------------------------------------------------------------------------


class InMemoryCredentialStore:
    """Dict-backed CredentialStore keyed by credential id."""

    def __init__(self) -> None:
        self._rows: dict[str, RefreshCredential] = {}

    def __len__(self) -> int:
        return len(self._rows)

    async def find_by_token(self, token: str) -> Result[RefreshCredential | None, RepositoryError]:
        for row in self._rows.values():
            if row.token == token:
                return Ok(row)
        return Ok(None)

    async def find_by_user_id(self, user_id: str) -> Result[list[RefreshCredential], RepositoryError]:
        rows = [row for row in self._rows.values() if row.user_id == user_id]
        rows.sort(key=lambda row: row.created_at)
        return Ok(rows)

    async def save(self, credential: RefreshCredential) -> Result[RefreshCredential, RepositoryError]:
        for row in self._rows.values():
            if row.token == credential.token and row.id != credential.id:
                return Err(RepositoryError(operation="save", message="Refresh token already exists"))
        self._rows[credential.id] = credential
        return Ok(credential)

    async def delete_by_token(self, token: str) -> Result[bool, RepositoryError]:
        for row_id, row in list(self._rows.items()):
            if row.token == token:
                del self._rows[row_id]
                return Ok(True)
        return Ok(False)

    async def delete_by_user_id(self, user_id: str) -> Result[int, RepositoryError]:
        doomed = [row_id for row_id, row in self._rows.items() if row.user_id == user_id]
        for row_id in doomed:
            del self._rows[row_id]
        return Ok(len(doomed))

    async def delete_expired(self, now: datetime | None = None) -> Result[int, RepositoryError]:
        current = as_utc(now) if now is not None else utcnow()
        doomed = [row_id for row_id, row in self._rows.items() if row.is_expired(current)]
        for row_id in doomed:
            del self._rows[row_id]
        return Ok(len(doomed))


class InMemoryUserDirectory:
    """Dict-backed UserDirectory. add()/remove() stand in for user CRUD."""

    def __init__(self, principals: list[Principal] | None = None) -> None:
        self._by_id: dict[str, Principal] = {}
        for principal in principals or []:
            self.add(principal)

    def add(self, principal: Principal) -> None:
        self._by_id[principal.user_id] = principal

    def remove(self, user_id: str) -> bool:
        return self._by_id.pop(user_id, None) is not None

    async def find_by_id(self, user_id: str) -> Result[Principal | None, RepositoryError]:
        return Ok(self._by_id.get(user_id))
