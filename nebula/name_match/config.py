"""
Configuration for the Name Match analysis driver.

Retry and throttle timings. Every failed classification for a row waits
longer than the last, up to a cap; a new row starts again from the base
delay.
"""

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff and throttle settings, in milliseconds."""
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    row_pause_ms: int = 200     # Pause between rows to throttle the API

    def delays(self) -> Iterator[int]:
        """
        Yield the backoff delays for one row's consecutive failures.

        1000, 2000, 4000, ... capped at max_delay_ms. Never exhausts.
        """
        delay = self.base_delay_ms
        while True:
            yield delay
            delay = min(delay * 2, self.max_delay_ms)


DEFAULT_RETRY_POLICY = RetryPolicy()
