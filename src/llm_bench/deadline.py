"""
Run deadline

Bounds the whole benchmark run: checked before every trial and used to cap
per-request timeouts so a single request cannot outlive the run.
"""

import time
from typing import Callable

from llm_bench.domain.errors import RunTimeoutError


class Deadline:
    """Wall-clock limit for a run (None or <= 0 means unlimited)"""

    def __init__(self, seconds: float | None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.seconds = seconds if seconds and seconds > 0 else None
        self._expires_at = clock() + self.seconds if self.seconds else None

    def remaining(self) -> float | None:
        """Seconds left, or None when unlimited"""
        if self._expires_at is None:
            return None
        return max(self._expires_at - self._clock(), 0.0)

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        """
        Raises:
            RunTimeoutError: If the deadline has passed
        """
        if self.expired:
            raise RunTimeoutError(f"run timeout of {self.seconds:g}s exceeded")

    def cap(self, timeout_seconds: float | None) -> float | None:
        """Shorten a request timeout to what is left of the run"""
        remaining = self.remaining()
        if remaining is None:
            return timeout_seconds
        if timeout_seconds is None:
            return remaining
        return min(timeout_seconds, remaining)
