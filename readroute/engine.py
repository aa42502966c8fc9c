"""
RoutingEngine - the caller-facing facade.

Wires the router, circuit breaker, failover manager, health monitor and
shadow comparator together from an ``Env`` and a set of collaborators.

Typical use:

    async with RoutingEngine(load_env(), executor=my_db) as engine:
        await engine.begin_rollout()

        routed = await engine.execute(
            query,
            RequestContext(stable_id=request_id, feature="reports"),
        )
        rows = routed.value
"""

from typing import Any

from readroute.clock import SystemClock
from readroute.env import Env
from readroute.failover import FailoverManager
from readroute.health import (
    CircuitBreaker,
    HealthMonitor,
    ReplicaHealthStore,
)
from readroute.logging import Logger, LoggingConfig
from readroute.logging.readroute_logging_models import RouterDebug
from readroute.models import (
    RequestContext,
    RolloutSchedule,
    RolloutState,
    RoutedResult,
    RouteDecision,
)
from readroute.notifier import AlertDispatcher, LoggingNotifier
from readroute.protocols import Clock, Executor, Hasher, Notifier, StableStore
from readroute.routing import (
    Md5Hasher,
    RequestRouter,
    RolloutTracker,
    RoutingPolicy,
    current_percentage,
)
from readroute.shadow import ShadowComparator
from readroute.store import MemoryStableStore, RedisStableStore, StoreKeys


class RoutingEngine:
    def __init__(
        self,
        env: Env,
        executor: Executor,
        store: StableStore | None = None,
        notifier: Notifier | None = None,
        clock: Clock | None = None,
        hasher: Hasher | None = None,
        schedule: RolloutSchedule | None = None,
        policy: RoutingPolicy | None = None,
    ) -> None:
        LoggingConfig().update(log_level=env.READROUTE_LOG_LEVEL)

        self._env = env
        self._executor = executor
        self._clock = clock or SystemClock()
        self._logger = Logger()
        self._keys = StoreKeys(prefix=env.READROUTE_STORE_PREFIX)

        # Stores built here are closed by close(). Injected stores belong to
        # the caller.
        self._owns_store = store is None
        if store is None:
            store = (
                RedisStableStore.from_url(env.READROUTE_REDIS_URL)
                if env.READROUTE_REDIS_URL
                else MemoryStableStore(clock=self._clock)
            )

        self._store = store
        self._notifier = notifier or LoggingNotifier(logger=self._logger)
        self._alerts = AlertDispatcher(
            self._notifier,
            logger=self._logger,
            **env.get_alert_config(),
        )

        self._schedule = schedule or RolloutSchedule.parse(env.READROUTE_ROLLOUT_SCHEDULE)
        self._router = RequestRouter(
            policy=policy or RoutingPolicy.from_lists(**env.get_routing_policy_config()),
            hasher=hasher or Md5Hasher(),
        )
        self._rollout = RolloutTracker(
            env.READROUTE_ROLLOUT_NAME,
            self._store,
            self._clock,
            keys=self._keys,
        )

        self._health_store = ReplicaHealthStore(self._store, self._clock, keys=self._keys)
        self._breaker = CircuitBreaker.from_env(
            env,
            self._store,
            self._clock,
            self._notifier,
            keys=self._keys,
            logger=self._logger,
            alerts=self._alerts,
        )
        self._failover = FailoverManager.from_env(
            env,
            executor,
            self._breaker,
            self._health_store,
            logger=self._logger,
        )
        self._monitor = HealthMonitor.from_env(
            env,
            executor,
            self._health_store,
            self._breaker,
            self._notifier,
            self._clock,
            logger=self._logger,
            alerts=self._alerts,
        )
        self._shadow = ShadowComparator.from_env(
            env,
            executor,
            self._notifier,
            logger=self._logger,
        )

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def failover(self) -> FailoverManager:
        return self._failover

    @property
    def monitor(self) -> HealthMonitor:
        return self._monitor

    @property
    def shadow(self) -> ShadowComparator:
        return self._shadow

    @property
    def alerts(self) -> AlertDispatcher:
        return self._alerts

    @property
    def logger(self) -> Logger:
        return self._logger

    @property
    def schedule(self) -> RolloutSchedule:
        return self._schedule

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        await self._monitor.start()

    async def close(self) -> None:
        self._shadow.close()
        await self._monitor.stop()
        await self._alerts.drain()

        if self._owns_store and isinstance(self._store, RedisStableStore):
            await self._store.close()

        await self._logger.close()

    async def begin_rollout(self, started_at: float | None = None) -> RolloutState:
        return await self._rollout.begin(started_at=started_at)

    async def reset_rollout(self) -> None:
        await self._rollout.reset()

    async def decide(self, ctx: RequestContext) -> RouteDecision:
        decision = self._router.decide(
            self._schedule,
            await self._rollout.current(),
            self._clock.now(),
            ctx,
        )

        await self._logger.log(
            RouterDebug(
                message="Routing decision",
                feature=ctx.feature,
                stable_id=ctx.stable_id,
                percentage=decision.percentage,
                target=decision.target.value,
                reason=decision.reason.value,
            )
        )

        return decision

    async def should_use_replica(self, ctx: RequestContext) -> bool:
        return (await self.decide(ctx)).uses_replica

    async def with_failover(
        self,
        operation: Any,
        replicas: list[str] | None = None,
    ) -> RoutedResult:
        return await self._failover.with_failover(operation, replicas=replicas)

    async def execute(self, operation: Any, ctx: RequestContext) -> RoutedResult:
        decision = await self.decide(ctx)

        if decision.uses_replica:
            return await self._failover.with_failover(operation)

        return RoutedResult(
            value=await self._failover.execute_primary(operation),
            decision=decision,
        )

    async def shadow_run(self, operation: Any, replica: str | None = None) -> Any:
        return await self._shadow.shadow_run(operation, replica=replica)

    async def snapshot(self) -> dict:
        rollout = await self._rollout.current()
        percentage = 0
        if rollout is not None:
            percentage = current_percentage(
                self._schedule,
                rollout.started_at,
                self._clock.now(),
            )

        return {
            "primary": self._failover.primary,
            "rollout": {
                "name": self._rollout.name,
                "started_at": rollout.started_at if rollout else None,
                "percentage": percentage,
            },
            "circuits": await self._breaker.statuses(self._failover.replicas),
            "health": {
                replica: health.healthy if health else None
                for replica, health in (
                    await self._health_store.all(self._failover.replicas)
                ).items()
            },
            "monitor": self._monitor.snapshot(),
            "shadow": self._shadow.snapshot(),
        }
