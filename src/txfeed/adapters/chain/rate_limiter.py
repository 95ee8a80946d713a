import asyncio
import time
import random


class SimpleRateLimiter:
    def __init__(self, requests_per_sec: float) -> None:
        if requests_per_sec <= 0:
            raise ValueError("requests_per_sec must be > 0")
        self._min_interval = 1.0 / requests_per_sec
        self._last_ts = 0.0

    def wait(self) -> None:
        now = time.time()
        elapsed = now - self._last_ts
        sleep_for = self._min_interval - elapsed
        if sleep_for > 0:
            time.sleep(sleep_for)
        self._last_ts = time.time()


class AsyncRateLimiter:
    """Spaces out calls from concurrent tasks sharing one event loop."""

    def __init__(self, requests_per_sec: float) -> None:
        if requests_per_sec <= 0:
            raise ValueError("requests_per_sec must be > 0")
        self._min_interval = 1.0 / requests_per_sec
        self._next_ts = 0.0

    async def wait(self) -> None:
        # reserve a slot before sleeping so waiters queue up in order
        now = time.monotonic()
        slot = max(now, self._next_ts)
        self._next_ts = slot + self._min_interval
        sleep_for = slot - now
        if sleep_for > 0:
            await asyncio.sleep(sleep_for)


def backoff_delay(attempt: int, base: float = 0.5, cap: float = 8.0) -> float:
    t = min(cap, base * (2 ** attempt))
    return t * (0.7 + random.random() * 0.6)


def backoff_sleep(attempt: int, base: float = 0.5, cap: float = 8.0) -> None:
    time.sleep(backoff_delay(attempt, base, cap))


async def async_backoff_sleep(attempt: int, base: float = 0.5, cap: float = 8.0) -> None:
    await asyncio.sleep(backoff_delay(attempt, base, cap))
