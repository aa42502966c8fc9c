from .memory_stable_store import MemoryStableStore as MemoryStableStore
from .redis_stable_store import RedisStableStore as RedisStableStore
from .store_keys import StoreKeys as StoreKeys
