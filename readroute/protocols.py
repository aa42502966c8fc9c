"""
Collaborator protocols.

readroute never talks to a database, cache or alerting system directly.
Everything it needs from the outside world is described here so callers
can plug in their own client, store and sinks.
"""

from typing import Any, Protocol


class Executor(Protocol):
    """The database client / pool / ORM that actually runs operations."""

    async def execute(self, target: str, operation: Any) -> Any: ...

    async def probe(self, target: str) -> bool: ...

    async def replication_lag(self, target: str) -> float: ...


class Clock(Protocol):
    def now(self) -> float: ...


class StableStore(Protocol):
    """
    Shared key-value store usable from many processes.

    ``ttl`` is in seconds. ``None`` means the key never expires.
    ``increment_with_ttl`` and ``set_if_absent`` must be atomic.
    """

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None: ...

    async def set_if_absent(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
    ) -> bool: ...

    async def increment_with_ttl(self, key: str, ttl: float) -> int: ...

    async def delete(self, *keys: str) -> None: ...


class Hasher(Protocol):
    def uniform_bucket(self, stable_id: str) -> int: ...


class Notifier(Protocol):
    async def alert(self, message: str, context: dict[str, Any]) -> None: ...
