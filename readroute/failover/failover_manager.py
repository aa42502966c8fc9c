"""
Ordered replica failover with primary fallback.

Replicas are tried one at a time, in priority order. Each attempt goes
through the circuit breaker. Any non-success (breaker fast-fail,
execution error, timeout, store outage) marks the replica unhealthy and
moves on. When no replica answers, the operation runs on the primary.
That primary call is never wrapped in a breaker because there is nothing
left to fall back to, and its error propagates unchanged.
"""

from typing import Any

from readroute.env import Env
from readroute.errors import ConfigurationError, StoreError
from readroute.health import CircuitBreaker, ReplicaHealthStore
from readroute.logging import Logger
from readroute.logging.readroute_logging_models import FailoverDebug, FailoverWarning
from readroute.models import (
    Attempt,
    Err,
    Fallback,
    FallbackReason,
    Ok,
    RoutedResult,
    RouteDecision,
    RouteReason,
    RouteTarget,
)
from readroute.protocols import Executor


class FailoverManager:
    def __init__(
        self,
        primary: str,
        replicas: list[str],
        executor: Executor,
        breaker: CircuitBreaker,
        health_store: ReplicaHealthStore,
        recheck_interval: float = 30.0,
        logger: Logger | None = None,
    ) -> None:
        if not primary:
            raise ConfigurationError("A primary target is required")

        if primary in replicas:
            raise ConfigurationError(f"Primary {primary} cannot also be a replica")

        if len(set(replicas)) != len(replicas):
            raise ConfigurationError(f"Duplicate replica names in {replicas}")

        self._primary = primary
        self._replicas = list(replicas)
        self._executor = executor
        self._breaker = breaker
        self._health_store = health_store
        self._recheck_interval = recheck_interval
        self._logger = logger or Logger()

    @classmethod
    def from_env(
        cls,
        env: Env,
        executor: Executor,
        breaker: CircuitBreaker,
        health_store: ReplicaHealthStore,
        logger: Logger | None = None,
    ) -> "FailoverManager":
        config = env.get_failover_config()
        return cls(
            config["primary"],
            config["replicas"],
            executor,
            breaker,
            health_store,
            recheck_interval=config["recheck_interval"],
            logger=logger,
        )

    @property
    def primary(self) -> str:
        return self._primary

    @property
    def replicas(self) -> list[str]:
        return list(self._replicas)

    def validate_replicas(self, replicas: list[str]) -> list[str]:
        unknown = [replica for replica in replicas if replica not in self._replicas]
        if unknown:
            raise ConfigurationError(f"Unknown replica(s): {', '.join(unknown)}")

        return list(replicas)

    async def execute_primary(self, operation: Any) -> Any:
        return await self._executor.execute(self._primary, operation)

    async def with_failover(
        self,
        operation: Any,
        replicas: list[str] | None = None,
    ) -> RoutedResult:
        candidates = (
            self._replicas if replicas is None else self.validate_replicas(replicas)
        )
        attempts: list[Attempt] = []

        for replica in candidates:
            outcome = await self._attempt(replica, operation)
            attempt = Attempt(replica=replica, outcome=outcome)
            attempts.append(attempt)

            if isinstance(outcome, Ok):
                await self._logger.log(
                    FailoverDebug(
                        message=f"Replica {replica} served operation",
                        replica=replica,
                        outcome=attempt.label,
                    )
                )
                return RoutedResult(
                    value=outcome.value,
                    decision=RouteDecision(
                        target=RouteTarget.REPLICA,
                        reason=RouteReason.REPLICA_SUCCEEDED,
                        replica=replica,
                    ),
                    attempts=attempts,
                )

            if outcome == Fallback(reason=FallbackReason.REPLICA_UNHEALTHY):
                continue

            try:
                await self._health_store.mark_unhealthy(
                    replica,
                    message=self._describe(outcome),
                )

            except StoreError as err:
                await self._logger.log(
                    FailoverWarning(
                        message=f"Could not record {replica} as unhealthy: {err}",
                        replica=replica,
                        outcome="store_error",
                    )
                )

            await self._logger.log(
                FailoverWarning(
                    message=f"Replica {replica} failed over: {self._describe(outcome)}",
                    replica=replica,
                    outcome=attempt.label,
                )
            )

        reason = RouteReason.REPLICAS_EXHAUSTED if candidates else RouteReason.NO_REPLICAS
        value = await self.execute_primary(operation)

        return RoutedResult(
            value=value,
            decision=RouteDecision(
                target=RouteTarget.PRIMARY,
                reason=reason,
            ),
            attempts=attempts,
        )

    async def _attempt(self, replica: str, operation: Any) -> Ok | Fallback | Err:
        # Store outages count against the replica, never against the primary.
        try:
            if not await self._health_store.is_available(replica, self._recheck_interval):
                return Fallback(reason=FallbackReason.REPLICA_UNHEALTHY)

            return await self._breaker.call(
                replica,
                lambda: self._executor.execute(replica, operation),
            )

        except StoreError as err:
            return Err(error=err)

    def _describe(self, outcome: Fallback | Err) -> str:
        match outcome:
            case Fallback(reason=reason):
                return f"skipped ({reason.value})"

            case Err(error=error, timed_out=True):
                return f"timed out ({error})"

            case Err(error=error):
                return f"error ({type(error).__name__}: {error})"

            case _:
                return "unknown outcome"
