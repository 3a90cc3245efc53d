import time
from collections import deque


class FpsMeter:
    """Frames-per-second over a short rolling window of tick timestamps."""

    def __init__(self, window: int = 30, clock=time.monotonic):
        if window < 2:
            raise ValueError(f"window must hold at least 2 ticks, got {window}")
        self._clock = clock
        self._ticks = deque(maxlen=window)

    def tick(self):
        self._ticks.append(self._clock())

    def reset(self):
        self._ticks.clear()

    @property
    def fps(self) -> float:
        if len(self._ticks) < 2:
            return 0.0
        span = self._ticks[-1] - self._ticks[0]
        if span <= 0:
            return 0.0
        return (len(self._ticks) - 1) / span
