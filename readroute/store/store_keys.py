from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StoreKeys:
    """Key layout for everything readroute keeps in the shared store."""

    prefix: str = "readroute"

    def circuit_failures(self, replica: str) -> str:
        return f"{self.prefix}:circuit:{replica}:failures"

    def circuit_opened_at(self, replica: str) -> str:
        return f"{self.prefix}:circuit:{replica}:opened_at"

    def circuit_trial(self, replica: str) -> str:
        return f"{self.prefix}:circuit:{replica}:trial"

    def replica_health(self, replica: str) -> str:
        return f"{self.prefix}:health:{replica}"

    def rollout_started_at(self, rollout: str) -> str:
        return f"{self.prefix}:rollout:{rollout}:started_at"
