import asyncio

from readroute.models import RolloutState
from readroute.protocols import Clock, StableStore
from readroute.store import StoreKeys


class RolloutTracker:
    """
    Persists the start of a named rollout in the shared store.

    The start time is written once with set-if-absent so every process
    agrees on it. ``current`` re-reads the store on each call, so a reset
    and re-begin made by another process is picked up on the next read.
    """

    __slots__ = ("_name", "_store", "_clock", "_keys", "_state", "_lock")

    def __init__(
        self,
        name: str,
        store: StableStore,
        clock: Clock,
        keys: StoreKeys | None = None,
    ) -> None:
        self._name = name
        self._store = store
        self._clock = clock
        self._keys = keys or StoreKeys()
        self._state: RolloutState | None = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    async def begin(self, started_at: float | None = None) -> RolloutState:
        if started_at is None:
            started_at = self._clock.now()

        key = self._keys.rollout_started_at(self._name)

        async with self._lock:
            await self._store.set_if_absent(key, started_at)
            stored = await self._store.get(key)
            self._state = RolloutState(name=self._name, started_at=float(stored))

        return self._state

    async def current(self) -> RolloutState | None:
        stored = await self._store.get(self._keys.rollout_started_at(self._name))
        if stored is None:
            self._state = None
            return None

        started_at = float(stored)
        if self._state is None or self._state.started_at != started_at:
            self._state = RolloutState(name=self._name, started_at=started_at)

        return self._state

    async def reset(self) -> None:
        async with self._lock:
            await self._store.delete(self._keys.rollout_started_at(self._name))
            self._state = None
