"""
Background replica health monitor.

Periodically probes every replica for liveness and replication lag and
writes the result to the shared store, where failover reads it. The
monitor also:

- issues the post-cooldown trial for OPEN circuits whose replica probes
  healthy, so circuits recover without waiting for user traffic;
- alerts when a replica fails ``alert_after`` consecutive probes (and
  every ``alert_after`` probes after that), and again when it recovers.

Alerts go out in the background, so a slow sink never delays a tick.

Ticks are single-flight. If a tick is still running when the next one
is requested, the new tick is skipped rather than stacked.
"""

import asyncio
from dataclasses import dataclass

import msgspec

from readroute.env import Env
from readroute.errors import TransientReplicaError
from readroute.logging import Logger
from readroute.logging.readroute_logging_models import (
    HealthError,
    HealthInfo,
    HealthWarning,
)
from readroute.models import ReplicaHealth
from readroute.notifier import AlertDispatcher
from readroute.protocols import Clock, Executor, Notifier

from .circuit_breaker import CircuitBreaker
from .replica_health_store import ReplicaHealthStore


@dataclass(slots=True)
class HealthMonitorConfig:
    interval: float = 30.0
    probe_timeout: float = 5.0
    max_lag: float = 30.0
    alert_after: int = 3


class HealthMonitor:
    def __init__(
        self,
        replicas: list[str],
        executor: Executor,
        health_store: ReplicaHealthStore,
        breaker: CircuitBreaker,
        notifier: Notifier,
        clock: Clock,
        config: HealthMonitorConfig | None = None,
        logger: Logger | None = None,
        alerts: AlertDispatcher | None = None,
    ) -> None:
        self._replicas = list(replicas)
        self._executor = executor
        self._health_store = health_store
        self._breaker = breaker
        self._clock = clock
        self._config = config or HealthMonitorConfig()
        self._logger = logger or Logger()
        self._alerts = alerts or AlertDispatcher(notifier, logger=self._logger)

        self._run_lock = asyncio.Lock()
        self._periodic_task: asyncio.Task | None = None
        self._running = False

        self._consecutive_failures: dict[str, int] = {
            replica: 0 for replica in self._replicas
        }
        self._last_results: dict[str, ReplicaHealth] = {}
        self._ticks = 0
        self._skipped_ticks = 0

    @classmethod
    def from_env(
        cls,
        env: Env,
        executor: Executor,
        health_store: ReplicaHealthStore,
        breaker: CircuitBreaker,
        notifier: Notifier,
        clock: Clock,
        logger: Logger | None = None,
        alerts: AlertDispatcher | None = None,
    ) -> "HealthMonitor":
        return cls(
            env.replicas,
            executor,
            health_store,
            breaker,
            notifier,
            clock,
            config=HealthMonitorConfig(**env.get_health_monitor_config()),
            logger=logger,
            alerts=alerts,
        )

    @property
    def running(self) -> bool:
        return self._running

    @property
    def alerts(self) -> AlertDispatcher:
        return self._alerts

    async def start(self) -> None:
        if self._running:
            return

        self._running = True
        self._periodic_task = asyncio.create_task(self._periodic_loop())

    async def stop(self) -> None:
        self._running = False
        if self._periodic_task:
            self._periodic_task.cancel()
            try:
                await self._periodic_task
            except asyncio.CancelledError:
                pass
            self._periodic_task = None

    async def _periodic_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()

            except Exception as err:
                await self._logger.log(
                    HealthError(
                        message="Health monitor tick failed",
                        replica="*",
                        error=str(err),
                    )
                )

            await asyncio.sleep(self._config.interval)

    async def run_once(self) -> dict[str, ReplicaHealth] | None:
        """
        Probe every replica once.

        Returns None when the previous tick is still running.
        """
        if self._run_lock.locked():
            self._skipped_ticks += 1
            return None

        async with self._run_lock:
            self._ticks += 1
            results: dict[str, ReplicaHealth] = {}

            for replica in self._replicas:
                results[replica] = await self._check_replica(replica)

            return results

    async def _probe(self, replica: str) -> tuple[bool, float, str]:
        try:
            alive = await asyncio.wait_for(
                self._executor.probe(replica),
                timeout=self._config.probe_timeout,
            )
            if not alive:
                return False, 0.0, "Liveness probe failed"

            lag = await asyncio.wait_for(
                self._executor.replication_lag(replica),
                timeout=self._config.probe_timeout,
            )

        except asyncio.TimeoutError:
            return False, 0.0, f"Probe timed out after {self._config.probe_timeout}s"

        except Exception as err:
            return False, 0.0, f"Probe error: {err}"

        lag = float(lag)
        if lag > self._config.max_lag:
            return False, lag, f"Replication lag {lag:.2f}s exceeds {self._config.max_lag}s"

        return True, lag, "Replica responsive"

    async def _check_replica(self, replica: str) -> ReplicaHealth:
        healthy, lag, message = await self._probe(replica)

        health = ReplicaHealth(
            replica=replica,
            healthy=healthy,
            last_checked=self._clock.now(),
            lag_seconds=lag,
            message=message,
        )
        await self._health_store.put(health)
        self._last_results[replica] = health

        if healthy:
            await self._logger.log(
                HealthInfo(
                    message=message,
                    replica=replica,
                    healthy=True,
                    lag_seconds=lag,
                )
            )
            await self._record_recovery(replica)

            if await self._breaker.trial_due(replica):
                await self._breaker.call(
                    replica,
                    lambda: self._trial_probe(replica),
                )

        else:
            await self._logger.log(
                HealthWarning(
                    message=message,
                    replica=replica,
                    healthy=False,
                    lag_seconds=lag,
                )
            )
            await self._record_failure(replica, health)

        return health

    async def _trial_probe(self, replica: str) -> bool:
        if not await self._executor.probe(replica):
            raise TransientReplicaError(replica, f"Trial probe of replica {replica} failed")

        return True

    async def _record_failure(self, replica: str, health: ReplicaHealth) -> None:
        failures = self._consecutive_failures.get(replica, 0) + 1
        self._consecutive_failures[replica] = failures

        alert_after = self._config.alert_after
        if failures >= alert_after and (failures - alert_after) % alert_after == 0:
            self._alerts.send(
                f"Replica {replica} unhealthy for {failures} consecutive checks",
                {
                    "replica": replica,
                    "consecutive_failures": failures,
                    "lag_seconds": health.lag_seconds,
                    "reason": health.message,
                },
            )

    async def _record_recovery(self, replica: str) -> None:
        failures = self._consecutive_failures.get(replica, 0)
        self._consecutive_failures[replica] = 0

        if failures >= self._config.alert_after:
            self._alerts.send(
                f"Replica {replica} recovered after {failures} failed checks",
                {
                    "replica": replica,
                    "consecutive_failures": failures,
                },
            )

    def snapshot(self) -> dict:
        return {
            "running": self._running,
            "ticks": self._ticks,
            "skipped_ticks": self._skipped_ticks,
            "replicas": {
                replica: msgspec.to_builtins(health)
                for replica, health in self._last_results.items()
            },
            "consecutive_failures": dict(self._consecutive_failures),
            "pending_alerts": self._alerts.pending,
        }
