"""
Redis-backed StableStore for multi-process deployments.

Values are JSON encoded with msgspec. The failure counter uses a
MULTI/EXEC pipeline of INCR + PEXPIRE so the increment and its expiry
land together. Set-if-absent maps to ``SET NX``.
"""

from typing import Any

import msgspec
import redis.asyncio as redis
from redis.exceptions import RedisError

from readroute.errors import StoreError


def _ttl_ms(ttl: float | None) -> int | None:
    if ttl is None:
        return None

    return max(1, int(ttl * 1000))


class RedisStableStore:
    __slots__ = ("_client", "_encoder", "_decoder")

    def __init__(self, client: redis.Redis) -> None:
        self._client = client
        self._encoder = msgspec.json.Encoder()
        self._decoder = msgspec.json.Decoder()

    @classmethod
    def from_url(cls, url: str) -> "RedisStableStore":
        return cls(redis.from_url(url))

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(key)

        except RedisError as err:
            raise StoreError(f"GET {key} failed: {err}") from err

        if raw is None:
            return None

        return self._decoder.decode(raw)

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        try:
            await self._client.set(
                key,
                self._encoder.encode(value),
                px=_ttl_ms(ttl),
            )

        except RedisError as err:
            raise StoreError(f"SET {key} failed: {err}") from err

    async def set_if_absent(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
    ) -> bool:
        try:
            created = await self._client.set(
                key,
                self._encoder.encode(value),
                px=_ttl_ms(ttl),
                nx=True,
            )

        except RedisError as err:
            raise StoreError(f"SET NX {key} failed: {err}") from err

        return bool(created)

    async def increment_with_ttl(self, key: str, ttl: float) -> int:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                count, _ = await pipe.incr(key).pexpire(key, _ttl_ms(ttl)).execute()

        except RedisError as err:
            raise StoreError(f"INCR {key} failed: {err}") from err

        return int(count)

    async def delete(self, *keys: str) -> None:
        if not keys:
            return

        try:
            await self._client.delete(*keys)

        except RedisError as err:
            raise StoreError(f"DEL {', '.join(keys)} failed: {err}") from err

    async def close(self) -> None:
        await self._client.aclose()
