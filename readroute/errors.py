"""
readroute error hierarchy.

Errors are split by when they may occur:
- Configuration errors are fatal and raised while building schedules,
  policies, env and replica lists. They are never raised while routing.
- Transient replica errors describe a failed replica attempt. They are
  recovered locally (failover to the next candidate or to primary) and
  never propagate out of ``with_failover``.

A failure of the primary itself is not wrapped: the executor's own
exception propagates to the caller unchanged.
"""


class ReadRouteError(Exception):
    """Base exception for readroute."""


class ConfigurationError(ReadRouteError):
    """Malformed schedule, env value, or unknown replica name."""


class StoreError(ReadRouteError):
    """The shared stable store backend failed."""


class TransientReplicaError(ReadRouteError):
    """A replica attempt failed in a way failover should absorb."""

    def __init__(self, replica: str, message: str = "") -> None:
        self.replica = replica
        super().__init__(message or f"Replica {replica} unavailable")


class ReplicaTimeoutError(TransientReplicaError):
    def __init__(self, replica: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            replica,
            f"Replica {replica} timed out after {timeout}s",
        )

