from dataclasses import dataclass
from enum import Enum


class RouteTarget(str, Enum):
    PRIMARY = "primary"
    REPLICA = "replica"


class RouteReason(str, Enum):
    """Reason for a routing decision."""

    ROLLOUT_BUCKET = "rollout_bucket"
    ROLLOUT_EXCLUDED = "rollout_excluded"
    READ_YOUR_WRITES = "read_your_writes"
    POLICY_PRIMARY = "policy_primary"
    REPLICA_SUCCEEDED = "replica_succeeded"
    REPLICAS_EXHAUSTED = "replicas_exhausted"
    NO_REPLICAS = "no_replicas"


@dataclass(frozen=True, slots=True)
class RequestContext:
    """
    Per-operation routing input.

    ``stable_id`` must stay the same across retries of one logical request
    so that every retry lands in the same rollout bucket.
    """

    stable_id: str
    feature: str = "default"
    is_write_recent: bool = False


@dataclass(frozen=True, slots=True)
class RouteDecision:
    target: RouteTarget
    reason: RouteReason
    replica: str | None = None
    percentage: int = 0

    @property
    def uses_replica(self) -> bool:
        return self.target == RouteTarget.REPLICA
