"""
tests/test_authorization.py -- Role gate.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from auth.authorization import has_minimum_role, is_allowed
from auth.models import AccessClaims, Role


def _identity(role: Role) -> AccessClaims:
    now = datetime.now(timezone.utc)
    return AccessClaims(
        user_id="u1",
        email="a@b.c",
        role=role,
        issuer="iss",
        audience="aud",
        issued_at=now,
        expires_at=now,
    )


class TestIsAllowed:
    def test_none_identity_never_allowed(self) -> None:
        assert is_allowed(None, [Role.USER, Role.ADMIN, Role.SUPER_ADMIN]) is False

    def test_membership(self) -> None:
        assert is_allowed(_identity(Role.ADMIN), [Role.ADMIN, Role.SUPER_ADMIN])

    def test_membership_is_exact(self) -> None:
        assert not is_allowed(_identity(Role.SUPER_ADMIN), [Role.ADMIN])

    def test_empty_allowed_set(self) -> None:
        assert not is_allowed(_identity(Role.ADMIN), [])

    def test_plain_strings_accepted(self) -> None:
        assert is_allowed(_identity(Role.USER), ["USER"])


class TestHasMinimumRole:
    @pytest.mark.parametrize(
        ("role", "minimum", "expected"),
        [
            (Role.SUPER_ADMIN, Role.ADMIN, True),
            (Role.ADMIN, Role.ADMIN, True),
            (Role.USER, Role.ADMIN, False),
            (Role.ADMIN, Role.SUPER_ADMIN, False),
            (Role.USER, Role.USER, True),
        ],
    )
    def test_hierarchy(self, role: Role, minimum: Role, expected: bool) -> None:
        assert has_minimum_role(_identity(role), minimum) is expected

    def test_none_identity(self) -> None:
        assert has_minimum_role(None, Role.USER) is False
