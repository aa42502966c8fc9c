"""
Tagged call outcomes.

Replica calls never signal fallback by raising. Every attempt resolves
to one of:

- ``Ok(value)``: the replica answered.
- ``Fallback(reason)``: the replica was not attempted (circuit open,
  trial already running elsewhere, marked unhealthy).
- ``Err(error)``: the replica was attempted and failed or timed out.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from .routing import RouteDecision

T = TypeVar("T")


class FallbackReason(str, Enum):
    CIRCUIT_OPEN = "circuit_open"
    TRIAL_IN_FLIGHT = "trial_in_flight"
    REPLICA_UNHEALTHY = "replica_unhealthy"


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Fallback:
    reason: FallbackReason

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Err:
    error: BaseException
    duration: float = 0.0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return False


Result = Ok[Any] | Fallback | Err


@dataclass(frozen=True, slots=True)
class Attempt:
    replica: str
    outcome: Result

    @property
    def label(self) -> str:
        match self.outcome:
            case Ok():
                return "ok"

            case Fallback(reason=reason):
                return reason.value

            case Err(timed_out=True):
                return "timeout"

            case _:
                return "error"


@dataclass(slots=True)
class RoutedResult(Generic[T]):
    value: T
    decision: RouteDecision
    attempts: list[Attempt] = field(default_factory=list)
