from __future__ import annotations

import pytest

from facemesh_demo.face_engine.fps import FpsMeter


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_fps_over_window():
    clock = FakeClock()
    meter = FpsMeter(window=5, clock=clock)
    assert meter.fps == 0.0
    for _ in range(10):
        meter.tick()
        clock.now += 0.04
    assert meter.fps == pytest.approx(25.0)

    meter.reset()
    assert meter.fps == 0.0


@pytest.mark.parametrize("window", [0, 1])
def test_window_too_small_rejected(window):
    with pytest.raises(ValueError, match="window"):
        FpsMeter(window=window)
