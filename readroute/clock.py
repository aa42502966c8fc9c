import time


class SystemClock:
    """Wall clock in epoch seconds, shared across processes via the store."""

    __slots__ = ()

    def now(self) -> float:
        return time.time()
