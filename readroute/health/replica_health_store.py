import msgspec

from readroute.models import ReplicaHealth
from readroute.protocols import Clock, StableStore
from readroute.store import StoreKeys


class ReplicaHealthStore:
    """Reads and writes ReplicaHealth records in the shared store."""

    __slots__ = ("_store", "_clock", "_keys")

    def __init__(
        self,
        store: StableStore,
        clock: Clock,
        keys: StoreKeys | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._keys = keys or StoreKeys()

    async def get(self, replica: str) -> ReplicaHealth | None:
        stored = await self._store.get(self._keys.replica_health(replica))
        if stored is None:
            return None

        return msgspec.convert(stored, ReplicaHealth)

    async def put(self, health: ReplicaHealth) -> None:
        await self._store.set(
            self._keys.replica_health(health.replica),
            msgspec.to_builtins(health),
        )

    async def mark_unhealthy(self, replica: str, message: str = "") -> ReplicaHealth:
        previous = await self.get(replica)
        health = ReplicaHealth(
            replica=replica,
            healthy=False,
            last_checked=self._clock.now(),
            lag_seconds=previous.lag_seconds if previous else 0.0,
            message=message,
        )
        await self.put(health)
        return health

    async def is_available(self, replica: str, recheck_interval: float) -> bool:
        """
        True unless the replica is marked unhealthy and not yet due for a re-check.

        Replicas with no record yet are assumed available.
        """
        health = await self.get(replica)
        if health is None or health.healthy:
            return True

        return health.due_for_recheck(self._clock.now(), recheck_interval)

    async def all(self, replicas: list[str]) -> dict[str, ReplicaHealth | None]:
        return {replica: await self.get(replica) for replica in replicas}
