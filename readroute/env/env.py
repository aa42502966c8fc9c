from typing import Callable, Dict, Union

from pydantic import BaseModel, StrictInt, StrictStr

from .time_parser import TimeParser

PrimaryType = Union[str, int, float, bytes, bool]


def _split_names(value: str) -> list[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


class Env(BaseModel):
    READROUTE_PRIMARY_TARGET: StrictStr = "primary"
    READROUTE_REPLICAS: StrictStr = ""
    READROUTE_ROLLOUT_NAME: StrictStr = "default"
    READROUTE_ROLLOUT_SCHEDULE: StrictStr = "0%:1h,50%:1h,100%"
    READROUTE_CRITICAL_FEATURES: StrictStr = ""
    READROUTE_PRIMARY_ONLY_FEATURES: StrictStr = ""
    READROUTE_CRITICAL_PENALTY: StrictInt = 20
    READROUTE_CIRCUIT_FAILURE_THRESHOLD: StrictInt = 5
    READROUTE_CIRCUIT_RECOVERY_TIMEOUT: StrictStr = "30s"
    READROUTE_CIRCUIT_TIMEOUT_THRESHOLD: StrictStr = "10s"
    READROUTE_CIRCUIT_FAILURE_WINDOW: StrictStr = "60s"
    READROUTE_CALL_TIMEOUT: StrictStr = "10s"
    READROUTE_HEALTH_CHECK_INTERVAL: StrictStr = "30s"
    READROUTE_HEALTH_PROBE_TIMEOUT: StrictStr = "5s"
    READROUTE_HEALTH_MAX_LAG: StrictStr = "30s"
    READROUTE_HEALTH_RECHECK_INTERVAL: StrictStr = "30s"
    READROUTE_HEALTH_ALERT_AFTER: StrictInt = 3
    READROUTE_SHADOW_TIMEOUT: StrictStr = "30s"
    READROUTE_ALERT_TIMEOUT: StrictStr = "10s"
    READROUTE_STORE_PREFIX: StrictStr = "readroute"
    READROUTE_REDIS_URL: StrictStr | None = None
    READROUTE_LOG_LEVEL: StrictStr = "info"

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "READROUTE_PRIMARY_TARGET": str,
            "READROUTE_REPLICAS": str,
            "READROUTE_ROLLOUT_NAME": str,
            "READROUTE_ROLLOUT_SCHEDULE": str,
            "READROUTE_CRITICAL_FEATURES": str,
            "READROUTE_PRIMARY_ONLY_FEATURES": str,
            "READROUTE_CRITICAL_PENALTY": int,
            "READROUTE_CIRCUIT_FAILURE_THRESHOLD": int,
            "READROUTE_CIRCUIT_RECOVERY_TIMEOUT": str,
            "READROUTE_CIRCUIT_TIMEOUT_THRESHOLD": str,
            "READROUTE_CIRCUIT_FAILURE_WINDOW": str,
            "READROUTE_CALL_TIMEOUT": str,
            "READROUTE_HEALTH_CHECK_INTERVAL": str,
            "READROUTE_HEALTH_PROBE_TIMEOUT": str,
            "READROUTE_HEALTH_MAX_LAG": str,
            "READROUTE_HEALTH_RECHECK_INTERVAL": str,
            "READROUTE_HEALTH_ALERT_AFTER": int,
            "READROUTE_SHADOW_TIMEOUT": str,
            "READROUTE_ALERT_TIMEOUT": str,
            "READROUTE_STORE_PREFIX": str,
            "READROUTE_REDIS_URL": str,
            "READROUTE_LOG_LEVEL": str,
        }

    @property
    def replicas(self) -> list[str]:
        return _split_names(self.READROUTE_REPLICAS)

    def get_routing_policy_config(self) -> dict:
        return {
            "critical_features": _split_names(self.READROUTE_CRITICAL_FEATURES),
            "primary_only_features": _split_names(self.READROUTE_PRIMARY_ONLY_FEATURES),
            "critical_penalty": self.READROUTE_CRITICAL_PENALTY,
        }

    def get_circuit_breaker_config(self) -> dict:
        parser = TimeParser()
        return {
            "failure_threshold": self.READROUTE_CIRCUIT_FAILURE_THRESHOLD,
            "recovery_timeout": parser.parse(self.READROUTE_CIRCUIT_RECOVERY_TIMEOUT),
            "timeout_threshold": parser.parse(self.READROUTE_CIRCUIT_TIMEOUT_THRESHOLD),
            "failure_window": parser.parse(self.READROUTE_CIRCUIT_FAILURE_WINDOW),
            "call_timeout": parser.parse(self.READROUTE_CALL_TIMEOUT),
        }

    def get_health_monitor_config(self) -> dict:
        parser = TimeParser()
        return {
            "interval": parser.parse(self.READROUTE_HEALTH_CHECK_INTERVAL),
            "probe_timeout": parser.parse(self.READROUTE_HEALTH_PROBE_TIMEOUT),
            "max_lag": parser.parse(self.READROUTE_HEALTH_MAX_LAG),
            "alert_after": self.READROUTE_HEALTH_ALERT_AFTER,
        }

    def get_failover_config(self) -> dict:
        return {
            "primary": self.READROUTE_PRIMARY_TARGET,
            "replicas": self.replicas,
            "recheck_interval": TimeParser().parse(
                self.READROUTE_HEALTH_RECHECK_INTERVAL
            ),
        }

    def get_shadow_config(self) -> dict:
        return {
            "primary": self.READROUTE_PRIMARY_TARGET,
            "shadow_timeout": TimeParser().parse(self.READROUTE_SHADOW_TIMEOUT),
        }

    def get_alert_config(self) -> dict:
        return {
            "timeout": TimeParser().parse(self.READROUTE_ALERT_TIMEOUT),
        }
