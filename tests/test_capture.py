from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from facemesh_demo.exceptions import InitializationError
from facemesh_demo.face_engine import capture as capture_mod
from facemesh_demo.face_engine.capture import CameraCapture, VideoSink


def fake_camera(opened=True):
    cam = MagicMock()
    cam.isOpened.return_value = opened
    cam.read.return_value = (True, np.zeros((4, 4, 3), dtype=np.uint8))
    return cam


def test_unopened_camera_raises():
    cam = fake_camera(opened=False)
    with patch.object(capture_mod.cv2, "VideoCapture", return_value=cam):
        capture = CameraCapture(VideoSink(), on_frame=lambda f: None, src=3)
        with pytest.raises(InitializationError, match="3"):
            capture.start()
    cam.release.assert_called_once()


def test_frames_reach_sink_and_callback():
    cam = fake_camera()
    sink = VideoSink()
    got = threading.Event()
    frames = []

    def on_frame(frame):
        frames.append(frame)
        got.set()

    with patch.object(capture_mod.cv2, "VideoCapture", return_value=cam):
        capture = CameraCapture(sink, on_frame=on_frame, width=320, height=240)
        capture.start()
        assert got.wait(2)
        capture.stop()

    assert frames
    assert sink.latest() is not None
    cam.set.assert_any_call(capture_mod.cv2.CAP_PROP_FRAME_WIDTH, 320)
    cam.release.assert_called_once()
    assert capture.cap is None


def test_stop_from_frame_callback_does_not_deadlock():
    cam = fake_camera()
    done = threading.Event()

    with patch.object(capture_mod.cv2, "VideoCapture", return_value=cam):
        capture = CameraCapture(VideoSink(), on_frame=lambda f: (capture.stop(), done.set()))
        capture.start()
        assert done.wait(2)
    cam.release.assert_called_once()


def test_sink_mirrors_for_display():
    sink = VideoSink()
    assert sink.latest() is None
    img = np.zeros((2, 3, 3), dtype=np.uint8)
    img[:, 0] = 255
    sink.push(img)
    assert sink.latest()[0, 0, 0] == 255
    sink.set_mirrored(True)
    assert sink.latest()[0, 2, 0] == 255
    sink.clear()
    assert sink.latest() is None
