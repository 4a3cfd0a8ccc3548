"""
core/result.py -- Tagged success/failure union returned across component seams.

Pattern: every fallible operation in auth/ returns ``Ok(value)`` or
``Err(error)`` instead of raising. Callers branch on ``result.ok`` and
propagate an ``Err`` unchanged when they cannot handle it:

    result = codec.verify_refresh(token)
    if not result.ok:
        return result
    claims = result.value

Layer rule: core/ is the kernel. No imports from auth/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying ``error``."""

    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]
