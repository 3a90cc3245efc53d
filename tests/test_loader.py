from __future__ import annotations

import threading

import pytest

from facemesh_demo.exceptions import InitializationError
from facemesh_demo.face_engine.loader import LibrarySignal


def test_resolved_signal(vision):
    library = vision.library()
    signal = LibrarySignal.resolved(library)
    assert signal.done()
    assert signal.wait(0) is library


def test_settles_only_once(vision):
    signal = LibrarySignal()
    signal.resolve(vision.library())
    with pytest.raises(RuntimeError):
        signal.resolve(vision.library())
    with pytest.raises(RuntimeError):
        signal.fail(ImportError("late"))


def test_timeout_is_initialization_error():
    with pytest.raises(InitializationError, match="not available"):
        LibrarySignal().wait(0.01)


def test_failure_is_initialization_error():
    signal = LibrarySignal()
    signal.fail(ImportError("mediapipe missing"))
    with pytest.raises(InitializationError, match="mediapipe missing"):
        signal.wait(1)


def test_waiter_wakes_on_resolve(vision):
    signal = LibrarySignal()
    library = vision.library()
    got = []
    t = threading.Thread(target=lambda: got.append(signal.wait(2)))
    t.start()
    signal.resolve(library)
    t.join(2)
    assert got == [library]
