"""
Control panel for the detection options.

A `ControlPanel` owns the current `MeshOptions` and a list of widgets. A
change to any widget produces a full updated options object and hands it
to every listener registered with `on()`. Widgets only clamp and quantize
values to their own range and step.

Panels are rendered by a host: `TrackbarPanelHost` builds an OpenCV window
with trackbars for the desktop viewer; the web UI renders `describe()`
itself and posts changes back through `set_values`.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

import cv2
import numpy as np

from facemesh_demo.face_engine.fps import FpsMeter
from facemesh_demo.mesh_config import CONFIDENCE_RANGE, MAX_FACES_RANGE, MeshOptions, merge_options

log = logging.getLogger(__name__)


class Control:
    field: Optional[str] = None

    def coerce(self, value):
        return value

    def describe(self, options: MeshOptions) -> Dict[str, Any]:
        raise NotImplementedError


class StaticText(Control):
    def __init__(self, title: str):
        self.title = title

    def describe(self, options):
        return {"type": "text", "title": self.title}


class FpsReadout(Control):
    def __init__(self, meter: FpsMeter, title: str = "FPS"):
        self.meter = meter
        self.title = title

    def describe(self, options):
        return {"type": "fps", "title": self.title, "value": round(self.meter.fps, 1)}


class Toggle(Control):
    def __init__(self, title: str, field: str):
        self.title = title
        self.field = field

    def coerce(self, value):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def describe(self, options):
        return {"type": "toggle", "title": self.title, "field": self.field,
                "value": getattr(options, self.field)}


class Slider(Control):
    def __init__(self, title: str, field: str, range: Sequence[float], step: float = 1):
        lo, hi = range
        if hi <= lo or step <= 0:
            raise ValueError(f"bad slider range {range!r} / step {step!r}")
        self.title = title
        self.field = field
        self.range = (lo, hi)
        self.step = step

    @property
    def integer(self) -> bool:
        return isinstance(self.step, int) and all(isinstance(v, int) for v in self.range)

    @property
    def positions(self) -> int:
        lo, hi = self.range
        return int(round((hi - lo) / self.step))

    def coerce(self, value):
        lo, hi = self.range
        value = max(lo, min(hi, float(value)))
        steps = round((value - lo) / self.step)
        value = lo + steps * self.step
        if self.integer:
            return int(round(value))
        # keep the float tidy at the step's resolution
        return round(min(hi, value), 6)

    def to_position(self, value) -> int:
        return int(round((float(value) - self.range[0]) / self.step))

    def from_position(self, pos: int):
        return self.coerce(self.range[0] + pos * self.step)

    def describe(self, options):
        return {"type": "slider", "title": self.title, "field": self.field,
                "value": getattr(options, self.field),
                "range": list(self.range), "step": self.step}


def default_controls(fps_meter: FpsMeter) -> List[Control]:
    return [
        StaticText(title="MediaPipe Face Mesh"),
        FpsReadout(fps_meter),
        Toggle(title="Selfie Mode", field="selfie_mode"),
        Slider(title="Max Number of Faces", field="max_num_faces", range=MAX_FACES_RANGE, step=1),
        Slider(title="Min Detection Confidence", field="min_detection_confidence",
               range=CONFIDENCE_RANGE, step=0.01),
        Slider(title="Min Tracking Confidence", field="min_tracking_confidence",
               range=CONFIDENCE_RANGE, step=0.01),
    ]


class ControlPanel:
    def __init__(self, container, options: MeshOptions):
        self.container = container
        self._options = options
        self.controls: List[Control] = []
        self._listeners: List[Callable[[MeshOptions], None]] = []
        self._lock = threading.Lock()

    @property
    def options(self) -> MeshOptions:
        return self._options

    def add(self, controls: Sequence[Control]) -> "ControlPanel":
        controls = list(controls)
        self.controls.extend(controls)
        if self.container is not None:
            self.container.attach(self, controls)
        return self

    def on(self, callback: Callable[[MeshOptions], None]) -> "ControlPanel":
        self._listeners.append(callback)
        return self

    def _control_for(self, field: str) -> Optional[Control]:
        for c in self.controls:
            if c.field == field:
                return c
        return None

    def set_value(self, field: str, value) -> MeshOptions:
        return self.set_values({field: value})

    def set_values(self, updates: Dict[str, Any]) -> MeshOptions:
        """Apply widget values; listeners fire once if anything changed."""
        coerced = {}
        for field, value in updates.items():
            control = self._control_for(field)
            if control is None:
                log.debug("ignoring value for unknown control %r", field)
                continue
            coerced[field] = control.coerce(value)
        with self._lock:
            previous = self._options
            self._options = merge_options(previous, coerced)
            options = self._options
        if options != previous:
            for cb in list(self._listeners):
                cb(options)
        return options

    def describe(self) -> List[Dict[str, Any]]:
        return [c.describe(self._options) for c in self.controls]


class TrackbarPanelHost:
    """
    Renders a ControlPanel as an OpenCV window: one trackbar per toggle or
    slider, plus a small header image with the static text and FPS.

    Trackbar callbacks fire from inside cv2.waitKey, so changes are applied
    on the GUI thread.
    """

    def __init__(self, window_name: str = "Controls", width: int = 420):
        self.window_name = window_name
        self.width = width
        self.panel: Optional[ControlPanel] = None

    def attach(self, panel: ControlPanel, controls: Sequence[Control]):
        """Create trackbars for newly added controls only."""
        if self.panel is None:
            self.panel = panel
            cv2.namedWindow(self.window_name)
        for control in controls:
            if isinstance(control, Toggle):
                cv2.createTrackbar(control.title, self.window_name,
                                   int(bool(getattr(panel.options, control.field))), 1,
                                   self._handler(control))
            elif isinstance(control, Slider):
                cv2.createTrackbar(control.title, self.window_name,
                                   control.to_position(getattr(panel.options, control.field)),
                                   control.positions, self._handler(control))

    def _handler(self, control: Control):
        def on_change(pos):
            if isinstance(control, Slider):
                value = control.from_position(pos)
            else:
                value = bool(pos)
            self.panel.set_value(control.field, value)
        return on_change

    def show(self):
        if self.panel is None:
            return
        lines = []
        for control in self.panel.controls:
            desc = control.describe(self.panel.options)
            if desc["type"] == "text":
                lines.append(desc["title"])
            elif desc["type"] == "fps":
                lines.append(f"{desc['title']}: {desc['value']:.1f}")
        header = np.full((30 * max(1, len(lines)) + 10, self.width, 3), 40, dtype=np.uint8)
        for i, line in enumerate(lines):
            cv2.putText(header, line, (10, 30 * (i + 1)), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
        cv2.imshow(self.window_name, header)

    def close(self):
        try:
            cv2.destroyWindow(self.window_name)
        except cv2.error:
            pass
