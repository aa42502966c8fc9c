"""
In-process StableStore.

Suitable for a single process (tests, one-worker deployments). Every
operation holds one asyncio lock, which makes increment and
set-if-absent atomic with respect to other coroutines. Expiry is
evaluated lazily against the injected clock.
"""

import asyncio
from typing import Any

from readroute.clock import SystemClock
from readroute.protocols import Clock


class MemoryStableStore:
    __slots__ = ("_values", "_expires_at", "_lock", "_clock")

    def __init__(self, clock: Clock | None = None) -> None:
        self._values: dict[str, Any] = {}
        self._expires_at: dict[str, float] = {}
        self._lock = asyncio.Lock()
        self._clock = clock or SystemClock()

    def _expire(self, key: str, now: float) -> None:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and now >= expires_at:
            self._values.pop(key, None)
            self._expires_at.pop(key, None)

    def _store(self, key: str, value: Any, ttl: float | None, now: float) -> None:
        self._values[key] = value
        if ttl is None:
            self._expires_at.pop(key, None)

        else:
            self._expires_at[key] = now + ttl

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            self._expire(key, self._clock.now())
            return self._values.get(key)

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        async with self._lock:
            self._store(key, value, ttl, self._clock.now())

    async def set_if_absent(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
    ) -> bool:
        async with self._lock:
            now = self._clock.now()
            self._expire(key, now)

            if key in self._values:
                return False

            self._store(key, value, ttl, now)
            return True

    async def increment_with_ttl(self, key: str, ttl: float) -> int:
        async with self._lock:
            now = self._clock.now()
            self._expire(key, now)

            count = int(self._values.get(key, 0)) + 1
            self._store(key, count, ttl, now)
            return count

    async def delete(self, *keys: str) -> None:
        async with self._lock:
            for key in keys:
                self._values.pop(key, None)
                self._expires_at.pop(key, None)

    def clear(self) -> None:
        self._values.clear()
        self._expires_at.clear()
