"""
core/errors.py -- The three failure kinds of the session core.

These are never conflated:

  ValidationError      The request itself is malformed (missing or badly
                       shaped Authorization header, blank token). Caller
                       fault -- safe to describe precisely.

  AuthenticationError  Trust in the presented credential failed for any
                       reason (bad signature, expired, unknown, mismatched
                       binding, orphaned owner). str() is ALWAYS the same
                       generic message so a caller cannot tell "not found"
                       from "expired". The specific reason is kept on the
                       instance for logs only.

  RepositoryError      Persistence failed. Surfaced only when it blocks
                       forward progress.

They subclass Exception so the HTTP adapter can raise them if it wants to,
but the core only ever returns them inside core.result.Err.

Layer rule: core/ is the kernel. No imports from auth/.
"""

from __future__ import annotations

from dataclasses import dataclass

GENERIC_AUTH_MESSAGE = "Invalid or expired credentials"


class CoreError(Exception):
    """Base class for every failure kind returned by the core."""


@dataclass(eq=False)
class ValidationError(CoreError):
    """A structurally invalid request.

    :param field: Name of the offending input (e.g. "authorization").
    :param message: Human-readable explanation, safe to return to the caller.
    """

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass(eq=False)
class AuthenticationError(CoreError):
    """The presented credential is not trusted.

    :param reason: Internal machine-readable cause (e.g. "token_expired").
        Logged, never shown to the caller.
    :param message: Public message. Defaults to GENERIC_AUTH_MESSAGE and should
        be left alone by the rotation flow.
    """

    reason: str
    message: str = GENERIC_AUTH_MESSAGE

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class RepositoryError(CoreError):
    """A persistence operation failed.

    :param operation: Store method that failed (e.g. "save").
    :param message: Short description of the failure.
    :param cause: Underlying driver exception or mapping error, if any.
    """

    operation: str
    message: str
    cause: BaseException | None = None

    def __str__(self) -> str:
        return f"{self.operation}: {self.message}"
