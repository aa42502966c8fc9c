"""
Routing module for replica read traffic.

Provides:
- Rollout schedules mapped to a traffic percentage over time
- Deterministic per-request bucket hashing
- Per-feature routing policy (critical / primary-only)
- Store-backed rollout start tracking
"""

from .hasher import Md5Hasher
from .request_router import RequestRouter
from .rollout_scheduler import RolloutScheduler, current_percentage
from .rollout_tracker import RolloutTracker
from .routing_policy import DEFAULT_POLICY, FeaturePolicy, RoutingPolicy

__all__ = [
    "Md5Hasher",
    "RequestRouter",
    "RolloutScheduler",
    "current_percentage",
    "RolloutTracker",
    "RoutingPolicy",
    "FeaturePolicy",
    "DEFAULT_POLICY",
]
