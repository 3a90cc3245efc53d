from __future__ import annotations

import numpy as np
import pytest

from facemesh_demo.face_engine.loader import CONNECTION_NAMES, LibrarySignal, VisionLibrary
from facemesh_demo.face_engine.results import DetectionResult


class FakeDetector:
    def __init__(self, options):
        self.options = options
        self.option_calls = []
        self.callbacks = []
        self.sent = 0
        self.close_calls = 0
        self.faces = []
        self.error = None

    def set_options(self, options):
        self.options = options
        self.option_calls.append(options)

    def on_results(self, callback):
        self.callbacks.append(callback)

    def send(self, image):
        if self.error is not None:
            raise self.error
        self.sent += 1
        result = DetectionResult(image=image, multi_face_landmarks=list(self.faces))
        for cb in self.callbacks:
            cb(result)

    def close(self):
        self.close_calls += 1


class FakeCapture:
    def __init__(self, sink, on_frame, width, height):
        self.sink = sink
        self.on_frame = on_frame
        self.width = width
        self.height = height
        self.start_calls = 0
        self.stop_calls = 0
        self.start_error = None

    @property
    def running(self):
        return self.start_calls > self.stop_calls

    def start(self):
        if self.start_error is not None:
            raise self.start_error
        self.start_calls += 1

    def stop(self):
        self.stop_calls += 1

    def emit(self, frame):
        self.sink.push(frame)
        self.on_frame(frame)


class DrawRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, image, landmarks, connections, style):
        self.calls.append((connections, style))


class FakeVision:
    """A VisionLibrary made of fakes, remembering everything it built."""

    def __init__(self):
        self.detectors = []
        self.captures = []
        self.draw = DrawRecorder()
        self.capture_start_error = None

    def create_detector(self, options):
        detector = FakeDetector(options)
        self.detectors.append(detector)
        return detector

    def create_capture(self, sink, on_frame, width, height):
        capture = FakeCapture(sink, on_frame, width, height)
        capture.start_error = self.capture_start_error
        self.captures.append(capture)
        return capture

    def library(self, with_draw=True) -> VisionLibrary:
        return VisionLibrary(
            create_detector=self.create_detector,
            create_capture=self.create_capture,
            draw_connectors=self.draw if with_draw else None,
            # topology objects are just their names here
            connections={name: name for name in CONNECTION_NAMES},
        )

    @property
    def detector(self) -> FakeDetector:
        return self.detectors[-1]

    @property
    def capture(self) -> FakeCapture:
        return self.captures[-1]


@pytest.fixture
def vision():
    return FakeVision()


@pytest.fixture
def ready_signal(vision):
    return LibrarySignal.resolved(vision.library())


@pytest.fixture
def frame():
    img = np.zeros((240, 320, 3), dtype=np.uint8)
    img[:, :160] = (255, 0, 0)
    return img
