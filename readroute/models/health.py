from dataclasses import dataclass
from enum import Enum

import msgspec


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass(frozen=True, slots=True)
class CircuitStatus:
    replica: str
    state: CircuitState
    failure_count: int = 0
    opened_at: float | None = None

    def to_dict(self) -> dict:
        return {
            "replica": self.replica,
            "circuit_state": self.state.name,
            "failure_count": self.failure_count,
            "opened_at": self.opened_at,
        }


class ReplicaHealth(msgspec.Struct, kw_only=True):
    replica: str
    healthy: bool
    last_checked: float
    lag_seconds: float = 0.0
    message: str = ""

    def due_for_recheck(self, now: float, recheck_interval: float) -> bool:
        return now - self.last_checked >= recheck_interval


@dataclass(frozen=True, slots=True)
class ShadowReport:
    replica: str
    matched: bool
    primary_duration: float
    replica_duration: float
    replica_error: str | None = None

    @property
    def latency_delta(self) -> float:
        return self.replica_duration - self.primary_duration
