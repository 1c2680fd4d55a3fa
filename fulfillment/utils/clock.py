"""Time sources for the fulfillment core."""

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current time in epoch milliseconds."""

    def now_ms(self) -> int:
        ...


class SystemClock:
    """Wall clock."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)
