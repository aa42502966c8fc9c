"""
Per-request replica routing decision.

The router is a pure function of ``(schedule, rollout_state, now, ctx)``
and never touches shared state, so it can run on every request without
locks. Order of evaluation:

1. Rollout percentage for ``now``.
2. Primary-only features always go to primary.
3. Critical features have their percentage reduced by the policy penalty.
4. Read-your-writes: a caller who just wrote always goes to primary.
5. ``uniform_bucket(stable_id) < percentage`` routes to a replica.
"""

from readroute.models import (
    RequestContext,
    RolloutSchedule,
    RolloutState,
    RouteDecision,
    RouteReason,
    RouteTarget,
)
from readroute.protocols import Hasher

from .hasher import Md5Hasher
from .rollout_scheduler import current_percentage
from .routing_policy import RoutingPolicy


class RequestRouter:
    __slots__ = ("_policy", "_hasher")

    def __init__(
        self,
        policy: RoutingPolicy | None = None,
        hasher: Hasher | None = None,
    ) -> None:
        self._policy = policy or RoutingPolicy()
        self._hasher = hasher or Md5Hasher()

    @property
    def policy(self) -> RoutingPolicy:
        return self._policy

    def decide(
        self,
        schedule: RolloutSchedule,
        rollout_state: RolloutState | None,
        now: float,
        ctx: RequestContext,
    ) -> RouteDecision:
        percentage = 0
        if rollout_state is not None:
            percentage = current_percentage(schedule, rollout_state.started_at, now)

        if self._policy.policy_for(ctx.feature).primary_only:
            return RouteDecision(
                target=RouteTarget.PRIMARY,
                reason=RouteReason.POLICY_PRIMARY,
                percentage=0,
            )

        percentage = self._policy.adjusted_percentage(ctx.feature, percentage)

        if ctx.is_write_recent:
            return RouteDecision(
                target=RouteTarget.PRIMARY,
                reason=RouteReason.READ_YOUR_WRITES,
                percentage=percentage,
            )

        bucket = self._hasher.uniform_bucket(ctx.stable_id)
        if bucket < percentage:
            return RouteDecision(
                target=RouteTarget.REPLICA,
                reason=RouteReason.ROLLOUT_BUCKET,
                percentage=percentage,
            )

        return RouteDecision(
            target=RouteTarget.PRIMARY,
            reason=RouteReason.ROLLOUT_EXCLUDED,
            percentage=percentage,
        )

    def should_use_replica(
        self,
        schedule: RolloutSchedule,
        rollout_state: RolloutState | None,
        now: float,
        ctx: RequestContext,
    ) -> bool:
        return self.decide(schedule, rollout_state, now, ctx).uses_replica
