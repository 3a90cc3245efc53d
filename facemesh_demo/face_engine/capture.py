import logging
import threading
from typing import Callable, Optional

import cv2
import numpy as np

from facemesh_demo.exceptions import InitializationError

log = logging.getLogger(__name__)


class VideoSink:
    """
    Holds the latest raw camera frame for the input view.

    `mirrored` is the display-side mirror flag (the "selfie" look of the
    input panel). It does not change what the detector receives.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None
        self.mirrored = False

    def set_mirrored(self, mirrored: bool):
        self.mirrored = bool(mirrored)

    def push(self, frame: np.ndarray):
        with self._lock:
            self._frame = frame

    def clear(self):
        with self._lock:
            self._frame = None

    def latest(self) -> Optional[np.ndarray]:
        """Latest frame as it should be displayed, or None before the first frame."""
        with self._lock:
            frame = self._frame
        if frame is None:
            return None
        if self.mirrored:
            return cv2.flip(frame, 1)
        return frame


class CameraCapture:
    """
    Reads frames from a webcam on a background thread and hands each one
    to `on_frame`. The next frame is not read until `on_frame` returns, so
    inference is serialized with capture.
    """

    def __init__(self, sink: VideoSink, on_frame: Callable[[np.ndarray], None],
                 width=480, height=480, src=0, fps=30):
        self.sink = sink
        self.on_frame = on_frame
        self.width = width
        self.height = height
        self.src = src
        self.fps = fps
        self.cap: Optional[cv2.VideoCapture] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        cap = cv2.VideoCapture(self.src)
        if not cap.isOpened():
            cap.release()
            raise InitializationError(f"camera {self.src!r} could not be opened")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        self.cap = cap

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="facemesh-capture", daemon=True)
        self._thread.start()
        log.info("camera %s started (%dx%d)", self.src, self.width, self.height)

    def _loop(self):
        while not self._stop_event.is_set():
            ret, frame = self.cap.read()
            if not ret:
                log.warning("[webcam] frame read failed")
                self._stop_event.wait(0.05)
                continue
            self.sink.push(frame)
            self.on_frame(frame)

    def stop(self):
        self._stop_event.set()
        thread = self._thread
        # stop() may be called from on_frame itself; never join our own thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=3.0)
        self._thread = None
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        log.info("camera %s stopped", self.src)
