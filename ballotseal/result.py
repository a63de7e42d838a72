"""
BALLOTSEAL — Tagged results.

Operations that touch the store or the ledger return ``Ok(value)`` or
``Err(error)`` instead of raising, so a ledger failure cannot be ignored by
accident. ``unwrap()`` re-raises the carried error for callers that prefer
exceptions (CLI, API handlers).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from ballotseal.exceptions import BallotSealError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: BallotSealError

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error

    def unwrap_or(self, default):
        return default


Result = Union[Ok[T], Err]
