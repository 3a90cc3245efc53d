import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import cv2
import numpy as np

from facemesh_demo.face_engine.results import DetectionResult

log = logging.getLogger(__name__)

DEFAULT_THICKNESS = 2


@dataclass(frozen=True)
class ConnectionStyle:
    """Line style for one connection group. `color` is BGR, `alpha` 0..1."""
    color: Tuple[int, int, int]
    thickness: int = DEFAULT_THICKNESS
    alpha: float = 1.0


def parse_hex_color(value: str) -> Tuple[Tuple[int, int, int], float]:
    """'#RRGGBB' or '#RRGGBBAA' -> ((b, g, r), alpha)."""
    h = value.lstrip("#")
    if len(h) not in (6, 8):
        raise ValueError(f"bad color {value!r}")
    r, g, b = int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)
    alpha = int(h[6:8], 16) / 255.0 if len(h) == 8 else 1.0
    return (b, g, r), alpha


def style(hex_color: str, thickness: int = DEFAULT_THICKNESS) -> ConnectionStyle:
    color, alpha = parse_hex_color(hex_color)
    return ConnectionStyle(color=color, thickness=thickness, alpha=alpha)


# Drawn in this order for every face: translucent mesh first, contours on top.
MESH_STYLES: List[Tuple[str, ConnectionStyle]] = [
    ("tesselation", style("#C0C0C070", thickness=1)),
    ("right_eye", style("#FF3030")),
    ("right_eyebrow", style("#FF3030")),
    ("left_eye", style("#30FF30")),
    ("left_eyebrow", style("#30FF30")),
    ("face_oval", style("#E0E0E0")),
    ("lips", style("#E0E0E0")),
]


@dataclass
class CapabilityReport:
    draw_connectors: bool
    missing_connections: List[str]

    @property
    def ok(self) -> bool:
        return self.draw_connectors and not self.missing_connections

    def warnings(self) -> List[str]:
        out = []
        if not self.draw_connectors:
            out.append("drawing primitive unavailable; landmarks will not be drawn")
        for name in self.missing_connections:
            out.append(f"connection topology {name!r} unavailable; group skipped")
        return out


class MeshRenderer:
    """
    Owns the square output canvas and draws each detection result on it.

    The source image is stretched to fill the canvas regardless of its
    aspect ratio, then every face gets the groups in `MESH_STYLES`.
    """

    def __init__(self, draw_connectors: Optional[Callable] = None,
                 connections: Optional[Dict[str, object]] = None,
                 width=480, height=480, styles=None):
        self.width = width
        self.height = height
        self.draw_connectors = draw_connectors
        self.connections = dict(connections or {})
        self.styles = list(styles or MESH_STYLES)
        self.canvas = np.zeros((height, width, 3), dtype=np.uint8)
        self._lock = threading.Lock()
        self.has_frame = False
        self.capabilities = self.check_capabilities()
        for msg in self.capabilities.warnings():
            log.warning(msg)

    def check_capabilities(self) -> CapabilityReport:
        missing = [name for name, _ in self.styles if name not in self.connections]
        return CapabilityReport(
            draw_connectors=callable(self.draw_connectors),
            missing_connections=missing,
        )

    def render(self, result: DetectionResult) -> np.ndarray:
        canvas = cv2.resize(result.image, (self.width, self.height))
        if self.capabilities.draw_connectors:
            for landmarks in result.multi_face_landmarks:
                self._draw_face(canvas, landmarks)
        with self._lock:
            self.canvas = canvas
            self.has_frame = True
        return canvas

    def _draw_face(self, canvas, landmarks):
        for name, st in self.styles:
            topology = self.connections.get(name)
            if topology is None:
                continue
            if st.alpha >= 1.0:
                self.draw_connectors(canvas, landmarks, topology, st)
                continue
            overlay = canvas.copy()
            self.draw_connectors(overlay, landmarks, topology, st)
            cv2.addWeighted(overlay, st.alpha, canvas, 1.0 - st.alpha, 0, dst=canvas)

    def clear(self):
        with self._lock:
            self.canvas = np.zeros((self.height, self.width, 3), dtype=np.uint8)
            self.has_frame = False

    def snapshot(self) -> np.ndarray:
        with self._lock:
            return self.canvas.copy()
