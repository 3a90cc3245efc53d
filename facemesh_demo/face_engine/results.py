from dataclasses import dataclass, field
from typing import Any, List

import numpy as np


@dataclass
class DetectionResult:
    """
    One processed frame.

    `image` is the BGR frame the detector actually ran on (already flipped
    when selfie mode is on). `multi_face_landmarks` holds one landmark set
    per detected face, in the detector's native form (MediaPipe
    NormalizedLandmarkList in production). It is empty when no face was found.
    """
    image: np.ndarray
    multi_face_landmarks: List[Any] = field(default_factory=list)

    @property
    def num_faces(self) -> int:
        return len(self.multi_face_landmarks)
