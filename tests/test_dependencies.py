"""
tests/test_dependencies.py -- FastAPI adapter over BearerAuthenticator.

A tiny app is built per test with the authenticator on app.state, the same
way an embedding application wires it in its lifespan. Requests go through
the real ASGI stack via TestClient.

Coverage:
  - Missing / malformed header -> 400 with the offending field
  - Untrusted token -> 401 with WWW-Authenticate: Bearer and the generic message
  - Valid token -> 200 with the identity
  - require_roles / require_minimum_role -> 403 on insufficient role
  - status_for() maps each failure kind
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from auth.bearer import BearerAuthenticator
from auth.dependencies import get_current_identity, require_minimum_role, require_roles, status_for
from auth.models import AccessClaims, Role
from auth.tokens import TokenCodec
from conftest import make_codec
from core.errors import GENERIC_AUTH_MESSAGE, AuthenticationError, CoreError, RepositoryError, ValidationError


def _build_app(codec: TokenCodec) -> FastAPI:
    app = FastAPI()
    app.state.authenticator = BearerAuthenticator(codec)

    @app.get("/me")
    def me(identity: AccessClaims = Depends(get_current_identity)) -> dict:
        return {"user_id": identity.user_id, "role": identity.role.value}

    @app.get("/admin")
    def admin(identity: AccessClaims = Depends(require_roles(Role.ADMIN, Role.SUPER_ADMIN))) -> dict:
        return {"user_id": identity.user_id}

    @app.get("/super")
    def super_only(identity: AccessClaims = Depends(require_roles(Role.SUPER_ADMIN))) -> dict:
        return {"user_id": identity.user_id}

    @app.get("/staff")
    def staff(identity: AccessClaims = Depends(require_minimum_role(Role.ADMIN))) -> dict:
        return {"user_id": identity.user_id}

    return app


@pytest.fixture
def client(codec: TokenCodec) -> TestClient:
    return TestClient(_build_app(codec))


def _bearer(codec: TokenCodec, role: Role = Role.USER) -> dict[str, str]:
    return {"Authorization": f"Bearer {codec.issue_access('u1', 'ada@example.com', role)}"}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestGetCurrentIdentity:
    def test_missing_header_is_400(self, client: TestClient) -> None:
        resp = client.get("/me")
        assert resp.status_code == 400
        assert resp.json()["detail"]["field"] == "authorization"

    @pytest.mark.parametrize("header", ["Token abc", "Bearer", "Basic dXNlcjpwYXNz"])
    def test_malformed_header_is_400(self, client: TestClient, header: str) -> None:
        resp = client.get("/me", headers={"Authorization": header})
        assert resp.status_code == 400

    def test_bad_token_is_401(self, client: TestClient) -> None:
        resp = client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"
        assert resp.json()["detail"]["message"] == GENERIC_AUTH_MESSAGE

    def test_expired_token_is_401(self) -> None:
        expired_codec = make_codec(access_ttl=timedelta(seconds=-5))
        client = TestClient(_build_app(expired_codec))
        resp = client.get("/me", headers=_bearer(expired_codec))
        assert resp.status_code == 401
        assert "expired" not in resp.json()["detail"]["code"]

    def test_token_from_other_codec_is_401(self, client: TestClient) -> None:
        resp = client.get("/me", headers=_bearer(make_codec()))
        assert resp.status_code == 401

    def test_valid_token(self, client: TestClient, codec: TokenCodec) -> None:
        resp = client.get("/me", headers=_bearer(codec))
        assert resp.status_code == 200
        assert resp.json() == {"user_id": "u1", "role": "USER"}


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class TestRoleDependencies:
    def test_user_forbidden_from_admin_route(self, client: TestClient, codec: TokenCodec) -> None:
        resp = client.get("/admin", headers=_bearer(codec, Role.USER))
        assert resp.status_code == 403

    def test_admin_allowed(self, client: TestClient, codec: TokenCodec) -> None:
        assert client.get("/admin", headers=_bearer(codec, Role.ADMIN)).status_code == 200

    def test_exact_membership(self, client: TestClient, codec: TokenCodec) -> None:
        assert client.get("/super", headers=_bearer(codec, Role.ADMIN)).status_code == 403
        assert client.get("/super", headers=_bearer(codec, Role.SUPER_ADMIN)).status_code == 200

    def test_minimum_role_hierarchy(self, client: TestClient, codec: TokenCodec) -> None:
        assert client.get("/staff", headers=_bearer(codec, Role.USER)).status_code == 403
        assert client.get("/staff", headers=_bearer(codec, Role.ADMIN)).status_code == 200
        assert client.get("/staff", headers=_bearer(codec, Role.SUPER_ADMIN)).status_code == 200

    def test_unauthenticated_role_route_is_not_403(self, client: TestClient) -> None:
        assert client.get("/admin").status_code == 400
        assert client.get("/admin", headers={"Authorization": "Bearer nope"}).status_code == 401


# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (ValidationError(field="refresh_token", message="required"), 400),
        (AuthenticationError(reason="token_expired"), 401),
        (RepositoryError(operation="save", message="down"), 503),
        (CoreError("unclassified"), 500),
    ],
)
def test_status_for(error: CoreError, expected: int) -> None:
    assert status_for(error) == expected
