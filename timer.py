"""
Per-player time budgets.

The rules engine never polls time. A session owns one PlayerTimer per player,
starts and pauses them on turn switches, and an external ticker asks whether
a budget has run out.
"""

import time
from typing import Callable, Optional


class PlayerTimer:
    """Countdown of a player's remaining thinking time, in seconds."""

    def __init__(self, initial_seconds: float, clock: Optional[Callable[[], float]] = None):
        self.clock = clock or time.monotonic
        self.remaining = float(initial_seconds)
        self.running = False
        self._started_at = 0.0

    def start(self) -> None:
        """Start or resume the countdown. No-op while already running."""
        if not self.running:
            self._started_at = self.clock()
            self.running = True

    def pause(self) -> None:
        """Stop the countdown and bank the elapsed time."""
        if self.running:
            self.remaining -= self.clock() - self._started_at
            self.running = False

    def remaining_time(self) -> float:
        if self.running:
            return self.remaining - (self.clock() - self._started_at)
        return self.remaining

    def is_expired(self) -> bool:
        return self.remaining_time() <= 0
