"""
Loading the vision library.

Importing mediapipe takes a noticeable amount of time (it pulls in its
graph runtime and model assets), so it happens on a background thread.
The result is published once through a `LibrarySignal`. Consumers wait on
it with a timeout instead of polling for module attributes.

A loaded library is a `VisionLibrary` bundle: the factories the controller
uses to build a detector and a capture source, the connector-drawing
primitive, and the named connection topologies. Tests build their own
bundle out of fakes.
"""
import logging
import threading
import time
from concurrent.futures import Future, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from facemesh_demo.exceptions import InitializationError

log = logging.getLogger(__name__)

# Names of the FaceMesh connection topologies the renderer draws.
CONNECTION_NAMES = {
    "tesselation": "FACEMESH_TESSELATION",
    "right_eye": "FACEMESH_RIGHT_EYE",
    "right_eyebrow": "FACEMESH_RIGHT_EYEBROW",
    "left_eye": "FACEMESH_LEFT_EYE",
    "left_eyebrow": "FACEMESH_LEFT_EYEBROW",
    "face_oval": "FACEMESH_FACE_OVAL",
    "lips": "FACEMESH_LIPS",
}


@dataclass
class VisionLibrary:
    create_detector: Callable[..., Any]
    create_capture: Callable[..., Any]
    draw_connectors: Optional[Callable[..., None]] = None
    connections: Dict[str, Any] = field(default_factory=dict)


class LibrarySignal:
    """One-shot load-completion signal for a `VisionLibrary`."""

    def __init__(self):
        self._future: Future = Future()

    @classmethod
    def resolved(cls, library: VisionLibrary) -> "LibrarySignal":
        signal = cls()
        signal.resolve(library)
        return signal

    def resolve(self, library: VisionLibrary):
        if self._future.done():
            raise RuntimeError("library signal already settled")
        self._future.set_result(library)

    def fail(self, exc: BaseException):
        if self._future.done():
            raise RuntimeError("library signal already settled")
        self._future.set_exception(exc)

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: Optional[float] = None) -> VisionLibrary:
        try:
            return self._future.result(timeout=timeout)
        except FutureTimeout:
            raise InitializationError(f"vision library not available after {timeout}s") from None
        except InitializationError:
            raise
        except Exception as e:
            raise InitializationError(f"vision library failed to load: {e}") from e


def _mediapipe_library(camera_index: int = 0, capture_fps: int = 30) -> VisionLibrary:
    import mediapipe as mp

    from facemesh_demo.face_engine.capture import CameraCapture
    from facemesh_demo.face_engine.detector import FaceMeshDetector

    mp_face = mp.solutions.face_mesh
    mp_draw = mp.solutions.drawing_utils

    def draw_connectors(image, landmarks, connections, style):
        mp_draw.draw_landmarks(
            image,
            landmarks,
            connections,
            landmark_drawing_spec=None,
            connection_drawing_spec=mp_draw.DrawingSpec(color=style.color, thickness=style.thickness),
        )

    def create_capture(sink, on_frame, width, height):
        return CameraCapture(sink, on_frame, width=width, height=height, src=camera_index, fps=capture_fps)

    connections = {}
    for name, attr in CONNECTION_NAMES.items():
        topology = getattr(mp_face, attr, None)
        if topology is not None:
            connections[name] = topology

    return VisionLibrary(
        create_detector=FaceMeshDetector,
        create_capture=create_capture,
        draw_connectors=draw_connectors,
        connections=connections,
    )


def load_mediapipe(camera_index: int = 0, capture_fps: int = 30) -> LibrarySignal:
    """Start importing mediapipe in the background; returns the signal to wait on."""
    signal = LibrarySignal()

    def _load():
        started = time.time()
        try:
            library = _mediapipe_library(camera_index=camera_index, capture_fps=capture_fps)
        except Exception as e:
            log.error("mediapipe failed to load: %s", e)
            signal.fail(e)
            return
        log.info("mediapipe loaded in %.2fs", time.time() - started)
        signal.resolve(library)

    threading.Thread(target=_load, name="mediapipe-loader", daemon=True).start()
    return signal
