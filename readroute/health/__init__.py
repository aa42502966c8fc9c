from .circuit_breaker import (
    CircuitBreaker as CircuitBreaker,
    CircuitBreakerConfig as CircuitBreakerConfig,
)
from .health_monitor import (
    HealthMonitor as HealthMonitor,
    HealthMonitorConfig as HealthMonitorConfig,
)
from .replica_health_store import ReplicaHealthStore as ReplicaHealthStore
