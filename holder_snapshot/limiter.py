import asyncio


class ConcurrencyLimiter:
    """Caps how many coroutines run at once. Queued work starts in no particular order."""

    def __init__(self, limit):
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit!r}")
        self.limit = limit
        self.active = 0
        self.peak = 0
        self._semaphore = asyncio.Semaphore(limit)

    async def run(self, fn, *args):
        async with self._semaphore:
            self.active += 1
            self.peak = max(self.peak, self.active)
            try:
                return await fn(*args)
            finally:
                self.active -= 1
