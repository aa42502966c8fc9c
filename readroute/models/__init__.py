from .health import (
    CircuitState as CircuitState,
    CircuitStatus as CircuitStatus,
    ReplicaHealth as ReplicaHealth,
    ShadowReport as ShadowReport,
)
from .result import (
    Attempt as Attempt,
    Err as Err,
    Fallback as Fallback,
    FallbackReason as FallbackReason,
    Ok as Ok,
    Result as Result,
    RoutedResult as RoutedResult,
)
from .rollout import (
    RolloutPhase as RolloutPhase,
    RolloutSchedule as RolloutSchedule,
    RolloutState as RolloutState,
)
from .routing import (
    RequestContext as RequestContext,
    RouteDecision as RouteDecision,
    RouteReason as RouteReason,
    RouteTarget as RouteTarget,
)
