import logging
import threading
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np

from facemesh_demo.exceptions import FaceMeshError, FrameProcessingError, InitializationError
from facemesh_demo.face_engine.capture import VideoSink
from facemesh_demo.face_engine.fps import FpsMeter
from facemesh_demo.face_engine.loader import LibrarySignal
from facemesh_demo.face_engine.renderer import MeshRenderer
from facemesh_demo.face_engine.results import DetectionResult
from facemesh_demo.logger import log_event
from facemesh_demo.mesh_config import DEFAULT_OPTIONS, MeshOptions

log = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    UNMOUNTED = "unmounted"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class FaceMeshController:
    """
    FaceMeshController drives one face mesh view: it waits for the vision
    library, builds the detector and the capture source from the library's
    factories, renders every result, and tears everything down on unmount.

    State goes LOADING -> READY on the first result, or to FAILED on any
    initialization or frame error. FAILED is terminal until `restart()` or
    a fresh `mount()`. Outside a mount the state is UNMOUNTED.

    Each mount gets its own cancellation token. Unmount clears it before
    releasing anything, so frames still in flight are dropped instead of
    reaching a closed detector.
    """

    def __init__(self, library: LibrarySignal, options: MeshOptions = DEFAULT_OPTIONS,
                 sink: Optional[VideoSink] = None, width=480, height=480,
                 canvas_size=480, load_timeout: float = 10.0):
        self.library_signal = library
        self.options = options
        self.sink = sink or VideoSink()
        self.width = width
        self.height = height
        self.canvas_size = canvas_size
        self.load_timeout = load_timeout

        self.fps = FpsMeter()
        self.renderer: Optional[MeshRenderer] = None
        self.state = LifecycleState.UNMOUNTED
        self.last_error: Optional[FaceMeshError] = None
        self.last_face_count = 0
        # replaced on every mount; set once that mount's initialization has finished either way
        self.settled = threading.Event()

        self._lock = threading.RLock()
        self._active: Optional[threading.Event] = None
        self._detector = None
        self._capture = None

    @property
    def is_loaded(self) -> bool:
        return self.state is LifecycleState.READY

    @property
    def is_loading(self) -> bool:
        return self.state is LifecycleState.LOADING

    @property
    def mounted(self) -> bool:
        return self._active is not None

    def mount(self) -> "FaceMeshController":
        with self._lock:
            if self._active is not None:
                return self
            token = threading.Event()
            token.set()
            self._active = token
            self.state = LifecycleState.LOADING
            self.last_error = None
            self.last_face_count = 0
            self.fps.reset()
            settled = threading.Event()
            self.settled = settled
        threading.Thread(target=self._initialize, args=(token, settled),
                         name="facemesh-init", daemon=True).start()
        return self

    def _initialize(self, token: threading.Event, settled: threading.Event):
        try:
            library = self.library_signal.wait(self.load_timeout)
            with self._lock:
                if not token.is_set():
                    log.info("unmounted while loading; initialization abandoned")
                    return
                self.renderer = MeshRenderer(
                    library.draw_connectors, library.connections,
                    width=self.canvas_size, height=self.canvas_size,
                )
                self._detector = library.create_detector(self.options)
                self._detector.on_results(lambda result: self._on_results(token, result))
                self._capture = library.create_capture(
                    self.sink,
                    on_frame=lambda frame: self._on_frame(token, frame),
                    width=self.width,
                    height=self.height,
                )
                self.sink.set_mirrored(self.options.selfie_mode)
                self._capture.start()
            log.info("face mesh initialized; waiting for first frame")
            log_event({"type": "initialized", "options": self.options.as_dict()})
        except InitializationError as e:
            self._fail(token, e)
        except Exception as e:
            err = InitializationError(f"initialization failed: {e}")
            err.__cause__ = e
            self._fail(token, err)
        finally:
            settled.set()

    def _on_frame(self, token: threading.Event, frame: np.ndarray):
        if not token.is_set():
            return
        detector = self._detector
        if detector is None:
            return
        try:
            detector.send(frame)
        except FaceMeshError as e:
            self._fail(token, e)
        except Exception as e:
            err = FrameProcessingError(f"detector failed on frame: {e}")
            err.__cause__ = e
            self._fail(token, err)

    def _on_results(self, token: threading.Event, result: DetectionResult):
        if not token.is_set():
            return
        with self._lock:
            if not token.is_set() or self.state is LifecycleState.FAILED:
                return
            first = self.state is LifecycleState.LOADING
            self.state = LifecycleState.READY
            renderer = self.renderer
        if first:
            log.info("face mesh ready")
            log_event({"type": "ready"})

        self.fps.tick()
        self.last_face_count = result.num_faces
        try:
            renderer.render(result)
        except Exception as e:
            raise FrameProcessingError(f"rendering failed: {e}") from e

    def _fail(self, token: threading.Event, error: FaceMeshError):
        with self._lock:
            if not token.is_set():
                return
            self.state = LifecycleState.FAILED
            self.last_error = error
            capture, detector = self._take_handles()
        log.error("face mesh failed: %s", error, exc_info=error)
        log_event({"type": "failed", "kind": type(error).__name__, "error": str(error)})
        self._release(capture, detector)

    def _take_handles(self):
        capture, detector = self._capture, self._detector
        self._capture = None
        self._detector = None
        return capture, detector

    def _release(self, capture, detector):
        # capture first: stopping it drains the frame in flight before close()
        if capture is not None:
            try:
                capture.stop()
            except Exception:
                log.exception("capture source did not stop cleanly")
        if detector is not None:
            try:
                detector.close()
            except Exception:
                log.exception("detector did not close cleanly")

    def unmount(self):
        with self._lock:
            token = self._active
            if token is None:
                return
            token.clear()
            self._active = None
            self.state = LifecycleState.UNMOUNTED
            capture, detector = self._take_handles()
        self._release(capture, detector)
        self.sink.clear()
        self.renderer = None
        self.fps.reset()
        log.info("face mesh unmounted")
        log_event({"type": "unmounted"})

    def restart(self) -> "FaceMeshController":
        """One full stop/start cycle; the way out of FAILED."""
        self.unmount()
        return self.mount()

    def update_options(self, options: MeshOptions):
        """Push new options to the running detector without touching capture."""
        with self._lock:
            self.options = options
            detector = self._detector
        self.sink.set_mirrored(options.selfie_mode)
        if detector is not None:
            detector.set_options(options)
        log.debug("options updated: %s", options)
        log_event({"type": "options", "options": options.as_dict()})

    def input_frame(self) -> Optional[np.ndarray]:
        return self.sink.latest()

    def output_frame(self) -> Optional[np.ndarray]:
        renderer = self.renderer
        if renderer is None or not renderer.has_frame:
            return None
        return renderer.snapshot()

    def status(self) -> Dict[str, Any]:
        renderer = self.renderer
        return {
            "state": self.state.value,
            "loaded": self.is_loaded,
            "loading": self.is_loading,
            "mounted": self.mounted,
            "fps": round(self.fps.fps, 1),
            "faces": self.last_face_count,
            "options": self.options.as_dict(),
            "error": str(self.last_error) if self.last_error else None,
            "warnings": renderer.capabilities.warnings() if renderer else [],
        }
