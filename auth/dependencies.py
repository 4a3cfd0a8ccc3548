"""
auth/dependencies.py -- FastAPI Depends() helpers over BearerAuthenticator.

The embedding application puts a BearerAuthenticator on
app.state.authenticator at startup. These helpers read it per request, run
the header check, and turn the core's typed failures into HTTP errors:

  ValidationError      -> 400  (malformed Authorization header)
  AuthenticationError  -> 401  (with WWW-Authenticate: Bearer)
  RepositoryError      -> 503
  role check failed    -> 403

status_for() and error_body() are exported so refresh/logout routes owned by
the embedding application map SessionRotationService results the same way.

Layer rule: the only auth/ module that imports fastapi.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.authorization import has_minimum_role, is_allowed
from auth.bearer import BearerAuthenticator
from auth.models import AccessClaims, Role
from core.errors import AuthenticationError, CoreError, RepositoryError, ValidationError


def status_for(error: CoreError) -> int:
    """HTTP status code for a core failure kind."""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, RepositoryError):
        return 503
    return 500


def error_body(error: CoreError) -> dict:
    """Response detail for a core failure. Never exposes internal reasons."""
    if isinstance(error, ValidationError):
        return {"code": "invalid_request", "field": error.field, "message": error.message}
    if isinstance(error, AuthenticationError):
        return {"code": "unauthorized", "message": error.message}
    return {"code": "unavailable", "message": "Service temporarily unavailable."}


def to_http_exception(error: CoreError) -> HTTPException:
    status_code = status_for(error)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return HTTPException(status_code=status_code, detail=error_body(error), headers=headers)


def get_current_identity(request: Request) -> AccessClaims:
    """Require a valid bearer access token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(identity: AccessClaims = Depends(get_current_identity)): ...
    """
    authenticator: BearerAuthenticator = request.app.state.authenticator
    result = authenticator.authenticate(request.headers.get("Authorization"))
    if not result.ok:
        raise to_http_exception(result.error)
    return result.value


def require_roles(*roles: Role | str) -> Callable[[Request], AccessClaims]:
    """Dependency factory: authenticated AND holding one of ``roles``.

        @router.delete("/teams/{id}")
        async def route(identity: AccessClaims = Depends(require_roles(Role.ADMIN, Role.SUPER_ADMIN))): ...
    """

    def dependency(request: Request) -> AccessClaims:
        identity = get_current_identity(request)
        if not is_allowed(identity, roles):
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "Insufficient role."},
            )
        return identity

    return dependency


def require_minimum_role(minimum: Role) -> Callable[[Request], AccessClaims]:
    """Dependency factory: authenticated AND at or above ``minimum`` in the role hierarchy."""

    def dependency(request: Request) -> AccessClaims:
        identity = get_current_identity(request)
        if not has_minimum_role(identity, minimum):
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "Insufficient role."},
            )
        return identity

    return dependency
