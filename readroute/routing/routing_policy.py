"""
Per-feature routing policy table.

Sensitive operation classes are configured here instead of patching the
data layer at runtime:

- ``critical`` features migrate later. Their rollout percentage is
  reduced by ``critical_penalty``.
- ``primary_only`` features never read from a replica.

Features that are not listed use the default policy.
"""

from dataclasses import dataclass, field

from readroute.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class FeaturePolicy:
    critical: bool = False
    primary_only: bool = False


DEFAULT_POLICY = FeaturePolicy()


@dataclass(frozen=True, slots=True)
class RoutingPolicy:
    features: dict[str, FeaturePolicy] = field(default_factory=dict)
    critical_penalty: int = 20

    def __post_init__(self):
        if isinstance(self.critical_penalty, bool) or not isinstance(self.critical_penalty, int):
            raise ConfigurationError(
                f"critical_penalty must be an int, got {self.critical_penalty!r}"
            )

        if not 0 <= self.critical_penalty <= 100:
            raise ConfigurationError(
                f"critical_penalty {self.critical_penalty} outside [0, 100]"
            )

    @classmethod
    def from_lists(
        cls,
        critical_features: list[str] | None = None,
        primary_only_features: list[str] | None = None,
        critical_penalty: int = 20,
    ) -> "RoutingPolicy":
        critical = set(critical_features or [])
        primary_only = set(primary_only_features or [])

        return cls(
            features={
                feature: FeaturePolicy(
                    critical=feature in critical,
                    primary_only=feature in primary_only,
                )
                for feature in critical | primary_only
            },
            critical_penalty=critical_penalty,
        )

    def policy_for(self, feature: str) -> FeaturePolicy:
        return self.features.get(feature, DEFAULT_POLICY)

    def adjusted_percentage(self, feature: str, percentage: int) -> int:
        if self.policy_for(feature).critical:
            return max(0, percentage - self.critical_penalty)

        return percentage
