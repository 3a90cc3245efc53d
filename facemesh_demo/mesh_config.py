"""
Detection options for the face mesh pipeline.

`MeshOptions` is the single configuration object shared by the control
panel, the detector and the web API. It is immutable: every change produces
a full new object so listeners always see a consistent set of values.
"""
from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict

MAX_FACES_RANGE = (1, 4)
CONFIDENCE_RANGE = (0.0, 1.0)


@dataclass(frozen=True)
class MeshOptions:
    selfie_mode: bool = True
    max_num_faces: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def model_params(self) -> Dict[str, Any]:
        """Options that are baked into the FaceMesh graph when it is built."""
        return {
            "max_num_faces": self.max_num_faces,
            "min_detection_confidence": self.min_detection_confidence,
            "min_tracking_confidence": self.min_tracking_confidence,
        }


DEFAULT_OPTIONS = MeshOptions()

_FIELD_NAMES = {f.name for f in fields(MeshOptions)}


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def merge_options(current: MeshOptions, updates: Dict[str, Any]) -> MeshOptions:
    """Return `current` with `updates` applied.

    Unknown keys are ignored. Values are coerced to the field type and held
    inside the same ranges the control panel widgets enforce.
    """
    changes: Dict[str, Any] = {}
    for k, v in updates.items():
        if k not in _FIELD_NAMES or v is None:
            continue
        if k == "selfie_mode":
            changes[k] = bool(v)
        elif k == "max_num_faces":
            changes[k] = int(clamp(int(round(float(v))), *MAX_FACES_RANGE))
        else:
            changes[k] = float(clamp(float(v), *CONFIDENCE_RANGE))
    if not changes:
        return current
    return replace(current, **changes)
