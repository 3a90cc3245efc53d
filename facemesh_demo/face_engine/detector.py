import logging
import threading
from typing import Callable, List

import cv2
import mediapipe as mp

from facemesh_demo.face_engine.results import DetectionResult
from facemesh_demo.mesh_config import DEFAULT_OPTIONS, MeshOptions

log = logging.getLogger(__name__)


class FaceMeshDetector:
    def __init__(self, options: MeshOptions = DEFAULT_OPTIONS, refine_landmarks=False):
        """
        FaceMeshDetector wraps MediaPipe FaceMesh behind a small
        send/on_results interface.

        Args:
            options: initial detection options
            refine_landmarks: whether to enable iris refinement (slower)

        The Python FaceMesh solution fixes its parameters when the graph is
        built, so `set_options` rebuilds the graph whenever a model parameter
        changes. Mirroring is applied here by flipping frames before
        inference and never needs a rebuild.
        """
        self.mp_face = mp.solutions.face_mesh
        self.refine_landmarks = refine_landmarks
        self.options = options
        self._callbacks: List[Callable[[DetectionResult], None]] = []
        self._lock = threading.Lock()
        self.face_mesh = self._build(options)

    def _build(self, options: MeshOptions):
        return self.mp_face.FaceMesh(
            static_image_mode=False,
            refine_landmarks=self.refine_landmarks,
            **options.model_params(),
        )

    def set_options(self, options: MeshOptions):
        with self._lock:
            rebuild = options.model_params() != self.options.model_params()
            self.options = options
            if rebuild and self.face_mesh is not None:
                log.info("rebuilding FaceMesh graph: %s", options.model_params())
                self.face_mesh.close()
                self.face_mesh = self._build(options)

    def on_results(self, callback: Callable[[DetectionResult], None]):
        self._callbacks.append(callback)

    def send(self, image):
        # image: BGR numpy array
        with self._lock:
            if self.face_mesh is None:
                return
            if self.options.selfie_mode:
                image = cv2.flip(image, 1)
            img_rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
            results = self.face_mesh.process(img_rgb)
        result = DetectionResult(
            image=image,
            multi_face_landmarks=list(results.multi_face_landmarks or []),
        )
        for cb in list(self._callbacks):
            cb(result)

    def close(self):
        with self._lock:
            if self.face_mesh is not None:
                self.face_mesh.close()
                self.face_mesh = None
        self._callbacks.clear()
