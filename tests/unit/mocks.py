"""
Shared test doubles for readroute unit tests.
"""

import asyncio
from collections import defaultdict
from typing import Any, Awaitable, Callable

from redis.exceptions import ConnectionError as RedisConnectionError

from readroute.errors import StoreError
from readroute.store import MemoryStableStore


class ManualClock:
    """Deterministic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def set(self, value: float) -> None:
        self._now = value


class RecordingNotifier:
    def __init__(self) -> None:
        self.alerts: list[tuple[str, dict[str, Any]]] = []

    async def alert(self, message: str, context: dict[str, Any]) -> None:
        self.alerts.append((message, context))

    def messages(self) -> list[str]:
        return [message for message, _ in self.alerts]


class BrokenNotifier:
    async def alert(self, message: str, context: dict[str, Any]) -> None:
        raise RuntimeError("alert sink down")


class SlowNotifier(RecordingNotifier):
    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay

    async def alert(self, message: str, context: dict[str, Any]) -> None:
        await asyncio.sleep(self.delay)
        await super().alert(message, context)


class FakeExecutor:
    """
    Executor whose per-target behaviour is scripted by tests.

    Each target maps to a handler ``async (operation) -> value``. Targets
    without a handler echo ``(target, operation)``.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Callable[[Any], Awaitable[Any]]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.call_counts: dict[str, int] = defaultdict(int)
        self.alive: dict[str, bool] = defaultdict(lambda: True)
        self.lag: dict[str, float] = defaultdict(float)
        self.probe_calls: dict[str, int] = defaultdict(int)
        self.probe_delay: float = 0.0

    def on(self, target: str, handler: Callable[[Any], Awaitable[Any]]) -> None:
        self.handlers[target] = handler

    def fail(self, target: str, error: BaseException | None = None) -> None:
        async def handler(operation: Any) -> Any:
            raise error or ConnectionError(f"{target} refused connection")

        self.handlers[target] = handler

    def succeed(self, target: str, value: Any) -> None:
        async def handler(operation: Any) -> Any:
            return value

        self.handlers[target] = handler

    async def execute(self, target: str, operation: Any) -> Any:
        self.calls.append((target, operation))
        self.call_counts[target] += 1

        if handler := self.handlers.get(target):
            return await handler(operation)

        return (target, operation)

    async def probe(self, target: str) -> bool:
        self.probe_calls[target] += 1
        if self.probe_delay:
            await asyncio.sleep(self.probe_delay)

        return self.alive[target]

    async def replication_lag(self, target: str) -> float:
        return self.lag[target]

    def targets_called(self) -> list[str]:
        return [target for target, _ in self.calls]


class FailingStore:
    """StableStore whose backend is unreachable."""

    def __init__(self) -> None:
        self.calls = 0

    def _refuse(self, command: str) -> StoreError:
        self.calls += 1
        return StoreError(f"{command} failed: connection refused")

    async def get(self, key: str) -> Any | None:
        raise self._refuse("GET")

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        raise self._refuse("SET")

    async def set_if_absent(self, key: str, value: Any, ttl: float | None = None) -> bool:
        raise self._refuse("SET NX")

    async def increment_with_ttl(self, key: str, ttl: float) -> int:
        raise self._refuse("INCR")

    async def delete(self, *keys: str) -> None:
        raise self._refuse("DEL")


class TrialRaceStore(MemoryStableStore):
    """
    MemoryStableStore that runs ``before_trial`` once, just before a circuit
    trial key is claimed. Lets a test change circuit state between a
    caller's ``opened_at`` read and its trial claim.
    """

    def __init__(self, clock: Any = None) -> None:
        super().__init__(clock=clock)
        self.before_trial: Callable[[], Awaitable[Any]] | None = None

    async def set_if_absent(self, key: str, value: Any, ttl: float | None = None) -> bool:
        if key.endswith(":trial") and self.before_trial is not None:
            before_trial, self.before_trial = self.before_trial, None
            await before_trial()

        return await super().set_if_absent(key, value, ttl=ttl)


class FakePipeline:
    def __init__(self, client: "FakeRedis", transaction: bool) -> None:
        self._client = client
        self.transaction = transaction
        self._commands: list[tuple[str, tuple]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._commands.clear()

    def incr(self, key: str) -> "FakePipeline":
        self._commands.append(("incr", (key,)))
        return self

    def pexpire(self, key: str, ms: int) -> "FakePipeline":
        self._commands.append(("pexpire", (key, ms)))
        return self

    async def execute(self) -> list:
        self._client.executed_pipelines.append(list(self._commands))
        results = []
        for command, args in self._commands:
            if command == "incr":
                (key,) = args
                value = int(self._client.values.get(key, b"0")) + 1
                self._client.values[key] = str(value).encode()
                results.append(value)

            else:
                key, ms = args
                self._client.expiry_ms[key] = ms
                results.append(True)

        return results


class FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, bytes] = {}
        self.expiry_ms: dict[str, int] = {}
        self.executed_pipelines: list[list] = []
        self.closed = False
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def get(self, key: str) -> bytes | None:
        self._check()
        return self.values.get(key)

    async def set(self, key: str, value: bytes, px: int | None = None, nx: bool = False):
        self._check()
        if nx and key in self.values:
            return None

        self.values[key] = value
        if px is None:
            self.expiry_ms.pop(key, None)

        else:
            self.expiry_ms[key] = px

        return True

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        self._check()
        return FakePipeline(self, transaction)

    async def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self.values.pop(key, None) is not None)

    async def aclose(self) -> None:
        self.closed = True
