import asyncio


class RateLimiter:
    """Token bucket rate limiter shared by every outbound RPC call.

    Waiters queue on a single asyncio.Lock (FIFO), and each acquisition is
    spaced at least ``1 / max_rps`` after the previous one, so the rate holds
    no matter how many cadences, batches or API requests are waiting.
    Pass the SAME instance to every client that spends the same RPC key.
    """

    def __init__(self, max_rps: float) -> None:
        if max_rps <= 0:
            raise ValueError(f"max_rps must be positive, got {max_rps}")
        self._max_rps = max_rps
        self._min_interval = 1.0 / max_rps
        self._last_request: float | None = None
        self._lock = asyncio.Lock()
        self.acquired = 0

    @property
    def max_rps(self) -> float:
        return self._max_rps

    async def acquire(self) -> None:
        async with self._lock:
            loop = asyncio.get_event_loop()
            if self._last_request is not None:
                wait = self._min_interval - (loop.time() - self._last_request)
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_request = asyncio.get_event_loop().time()
            self.acquired += 1
