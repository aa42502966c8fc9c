"""
Per-replica circuit breaker backed by the shared stable store.

States:
- CLOSED: replica attempts are allowed. Failures increment a counter
  with a sliding expiry. Reaching ``failure_threshold`` consecutive
  failures, or a single failed call slower than ``timeout_threshold``,
  opens the circuit.
- OPEN: calls fast-fail with ``Fallback(CIRCUIT_OPEN)`` and the caller
  falls back elsewhere.

There is no persisted half-open state. Once ``recovery_timeout`` has
elapsed since ``opened_at``, exactly one caller (live traffic or the
health monitor) wins the trial key and runs a trial call. Other callers
keep failing fast while it runs. A successful trial closes the circuit
and zeroes the counter. A failed trial refreshes ``opened_at`` and starts
a new cooldown. The winner re-reads ``opened_at`` before the
trial, so a caller holding a stale read cannot re-open a circuit that
another trial just closed.

Opening alerts are sent in the background through an ``AlertDispatcher``.

All state changes go through atomic store primitives (increment with
ttl, set-if-absent, delete). The breaker never does a local
read-modify-write, so many processes can share one replica's circuit.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from readroute.env import Env
from readroute.errors import ReplicaTimeoutError
from readroute.logging import Logger
from readroute.logging.readroute_logging_models import CircuitInfo, CircuitWarning
from readroute.models import (
    CircuitState,
    CircuitStatus,
    Err,
    Fallback,
    FallbackReason,
    Ok,
    Result,
)
from readroute.notifier import AlertDispatcher
from readroute.protocols import Clock, Notifier, StableStore
from readroute.store import StoreKeys


@dataclass(slots=True)
class CircuitBreakerConfig:
    """Configuration for replica circuit breakers."""

    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    timeout_threshold: float = 10.0
    failure_window: float = 60.0
    call_timeout: float = 10.0


class CircuitBreaker:
    def __init__(
        self,
        store: StableStore,
        clock: Clock,
        notifier: Notifier,
        config: CircuitBreakerConfig | None = None,
        keys: StoreKeys | None = None,
        logger: Logger | None = None,
        alerts: AlertDispatcher | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._config = config or CircuitBreakerConfig()
        self._keys = keys or StoreKeys()
        self._logger = logger or Logger()
        self._alerts = alerts or AlertDispatcher(notifier, logger=self._logger)

    @classmethod
    def from_env(
        cls,
        env: Env,
        store: StableStore,
        clock: Clock,
        notifier: Notifier,
        keys: StoreKeys | None = None,
        logger: Logger | None = None,
        alerts: AlertDispatcher | None = None,
    ) -> "CircuitBreaker":
        return cls(
            store,
            clock,
            notifier,
            config=CircuitBreakerConfig(**env.get_circuit_breaker_config()),
            keys=keys,
            logger=logger,
            alerts=alerts,
        )

    @property
    def config(self) -> CircuitBreakerConfig:
        return self._config

    @property
    def alerts(self) -> AlertDispatcher:
        return self._alerts

    async def status(self, replica: str) -> CircuitStatus:
        opened_at = await self._store.get(self._keys.circuit_opened_at(replica))
        failure_count = await self._store.get(self._keys.circuit_failures(replica))

        return CircuitStatus(
            replica=replica,
            state=CircuitState.CLOSED if opened_at is None else CircuitState.OPEN,
            failure_count=int(failure_count or 0),
            opened_at=None if opened_at is None else float(opened_at),
        )

    async def statuses(self, replicas: list[str]) -> dict:
        circuits = {replica: await self.status(replica) for replica in replicas}

        return {
            "replicas": {
                replica: status.to_dict() for replica, status in circuits.items()
            },
            "open_circuits": [
                replica
                for replica, status in circuits.items()
                if status.state == CircuitState.OPEN
            ],
        }

    async def is_open(self, replica: str) -> bool:
        return (await self.status(replica)).state == CircuitState.OPEN

    async def trial_due(self, replica: str) -> bool:
        opened_at = await self._store.get(self._keys.circuit_opened_at(replica))
        if opened_at is None:
            return False

        return self._clock.now() - float(opened_at) >= self._config.recovery_timeout

    async def call(
        self,
        replica: str,
        operation: Callable[[], Awaitable[Any]],
    ) -> Result:
        opened_at = await self._store.get(self._keys.circuit_opened_at(replica))

        if opened_at is None:
            return await self._call_closed(replica, operation)

        if self._clock.now() - float(opened_at) < self._config.recovery_timeout:
            return Fallback(reason=FallbackReason.CIRCUIT_OPEN)

        won_trial = await self._store.set_if_absent(
            self._keys.circuit_trial(replica),
            self._clock.now(),
            ttl=self._config.call_timeout * 2,
        )
        if not won_trial:
            return Fallback(reason=FallbackReason.TRIAL_IN_FLIGHT)

        # The opened_at read above may predate another caller's successful
        # trial, which also freed the trial key this caller just won.
        opened_at = await self._store.get(self._keys.circuit_opened_at(replica))
        if opened_at is None:
            await self._store.delete(self._keys.circuit_trial(replica))
            return await self._call_closed(replica, operation)

        if self._clock.now() - float(opened_at) < self._config.recovery_timeout:
            await self._store.delete(self._keys.circuit_trial(replica))
            return Fallback(reason=FallbackReason.CIRCUIT_OPEN)

        return await self._call_trial(replica, operation)

    async def force_open(self, replica: str) -> None:
        await self._store.set(self._keys.circuit_opened_at(replica), self._clock.now())

    async def reset(self, replica: str) -> None:
        await self._store.delete(
            self._keys.circuit_failures(replica),
            self._keys.circuit_opened_at(replica),
            self._keys.circuit_trial(replica),
        )

    async def _invoke(
        self,
        replica: str,
        operation: Callable[[], Awaitable[Any]],
    ) -> Result:
        start = self._clock.now()

        try:
            value = await asyncio.wait_for(
                operation(),
                timeout=self._config.call_timeout,
            )
            return Ok(value=value, duration=self._clock.now() - start)

        except asyncio.TimeoutError:
            return Err(
                error=ReplicaTimeoutError(replica, self._config.call_timeout),
                duration=self._clock.now() - start,
                timed_out=True,
            )

        except Exception as err:
            return Err(error=err, duration=self._clock.now() - start)

    async def _call_closed(
        self,
        replica: str,
        operation: Callable[[], Awaitable[Any]],
    ) -> Result:
        result = await self._invoke(replica, operation)

        if isinstance(result, Ok):
            await self._store.delete(self._keys.circuit_failures(replica))
            return result

        failure_count = await self._store.increment_with_ttl(
            self._keys.circuit_failures(replica),
            self._config.failure_window,
        )

        too_slow = result.duration > self._config.timeout_threshold
        if failure_count >= self._config.failure_threshold or too_slow:
            await self._open(replica, failure_count, result, too_slow)

        return result

    async def _call_trial(
        self,
        replica: str,
        operation: Callable[[], Awaitable[Any]],
    ) -> Result:
        result = await self._invoke(replica, operation)

        if isinstance(result, Ok):
            await self.reset(replica)
            await self._logger.log(
                CircuitInfo(
                    message=f"Circuit for replica {replica} closed after successful trial",
                    replica=replica,
                    failure_count=0,
                )
            )
            return result

        failure_count = await self._store.increment_with_ttl(
            self._keys.circuit_failures(replica),
            self._config.failure_window,
        )
        await self._store.set(self._keys.circuit_opened_at(replica), self._clock.now())
        await self._store.delete(self._keys.circuit_trial(replica))

        await self._logger.log(
            CircuitWarning(
                message=f"Trial call to replica {replica} failed, circuit stays OPEN",
                replica=replica,
                failure_count=failure_count,
            )
        )

        return result

    async def _open(
        self,
        replica: str,
        failure_count: int,
        result: Err,
        too_slow: bool,
    ) -> None:
        opened_at = self._clock.now()
        opened = await self._store.set_if_absent(
            self._keys.circuit_opened_at(replica),
            opened_at,
        )

        # Another caller already opened this circuit.
        if not opened:
            return

        reason = "slow call" if too_slow else "failure threshold reached"
        message = f"Circuit for replica {replica} OPEN ({reason})"

        await self._logger.log(
            CircuitWarning(
                message=message,
                replica=replica,
                failure_count=failure_count,
            )
        )

        self._alerts.send(
            message,
            {
                "replica": replica,
                "failure_count": failure_count,
                "opened_at": opened_at,
                "duration": result.duration,
                "timed_out": result.timed_out,
                "error": str(result.error),
            },
        )
