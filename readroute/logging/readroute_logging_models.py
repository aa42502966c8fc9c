from .models import Entry, LogLevel


class RouterDebug(Entry, kw_only=True):
    feature: str
    stable_id: str
    percentage: int
    target: str
    reason: str
    level: LogLevel = LogLevel.DEBUG

class CircuitInfo(Entry, kw_only=True):
    replica: str
    failure_count: int
    level: LogLevel = LogLevel.INFO

class CircuitWarning(Entry, kw_only=True):
    replica: str
    failure_count: int
    level: LogLevel = LogLevel.WARN

class FailoverDebug(Entry, kw_only=True):
    replica: str
    outcome: str
    level: LogLevel = LogLevel.DEBUG

class FailoverWarning(Entry, kw_only=True):
    replica: str
    outcome: str
    level: LogLevel = LogLevel.WARN

class HealthInfo(Entry, kw_only=True):
    replica: str
    healthy: bool
    lag_seconds: float
    level: LogLevel = LogLevel.INFO

class HealthWarning(Entry, kw_only=True):
    replica: str
    healthy: bool
    lag_seconds: float
    level: LogLevel = LogLevel.WARN

class HealthError(Entry, kw_only=True):
    replica: str
    error: str
    level: LogLevel = LogLevel.ERROR

class ShadowInfo(Entry, kw_only=True):
    replica: str
    matched: bool
    latency_delta: float
    level: LogLevel = LogLevel.INFO

class ShadowWarning(Entry, kw_only=True):
    replica: str
    error: str
    level: LogLevel = LogLevel.WARN

class NotifierAlert(Entry, kw_only=True):
    context: dict[str, str | int | float | bool | None]
    level: LogLevel = LogLevel.WARN

class NotifierError(Entry, kw_only=True):
    error: str
    level: LogLevel = LogLevel.ERROR
