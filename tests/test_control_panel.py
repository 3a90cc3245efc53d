from __future__ import annotations

import pytest

from facemesh_demo.control_panel import ControlPanel, Slider, Toggle, default_controls
from facemesh_demo.face_engine.fps import FpsMeter
from facemesh_demo.mesh_config import DEFAULT_OPTIONS


@pytest.fixture
def panel():
    return ControlPanel(None, DEFAULT_OPTIONS).add(default_controls(FpsMeter()))


def test_slider_clamps_and_quantizes():
    faces = Slider("Max Number of Faces", "max_num_faces", range=(1, 4), step=1)
    assert faces.coerce(9) == 4
    assert faces.coerce(0) == 1
    assert faces.coerce(2.6) == 3
    assert isinstance(faces.coerce(2.0), int)

    conf = Slider("Min Detection Confidence", "min_detection_confidence", range=(0.0, 1.0), step=0.01)
    assert conf.coerce(1.7) == 1.0
    assert conf.coerce(-3) == 0.0
    assert conf.coerce(0.123) == pytest.approx(0.12)
    assert conf.positions == 100
    assert conf.from_position(37) == pytest.approx(0.37)
    assert conf.to_position(0.5) == 50


def test_slider_rejects_bad_range():
    with pytest.raises(ValueError):
        Slider("bad", "max_num_faces", range=(4, 1))


def test_toggle_coerces_strings():
    t = Toggle("Selfie Mode", "selfie_mode")
    assert t.coerce("false") is False
    assert t.coerce("on") is True
    assert t.coerce(0) is False


def test_change_emits_full_options(panel):
    seen = []
    panel.on(seen.append)
    panel.set_value("min_tracking_confidence", 0.8)

    assert len(seen) == 1
    options = seen[0]
    assert options.min_tracking_confidence == pytest.approx(0.8)
    # everything else carried over
    assert options.selfie_mode is True
    assert options.max_num_faces == 1
    assert options.min_detection_confidence == 0.5
    assert panel.options == options


def test_batch_update_fires_once(panel):
    seen = []
    panel.on(seen.append)
    panel.set_values({"max_num_faces": 3, "selfie_mode": False})
    assert len(seen) == 1
    assert seen[0].max_num_faces == 3 and seen[0].selfie_mode is False


def test_no_change_no_event(panel):
    seen = []
    panel.on(seen.append)
    panel.set_value("max_num_faces", 1)
    panel.set_values({"not_a_field": 3})
    assert seen == []


def test_describe_lists_widgets(panel):
    desc = panel.describe()
    assert [d["type"] for d in desc] == ["text", "fps", "toggle", "slider", "slider", "slider"]
    assert desc[0]["title"] == "MediaPipe Face Mesh"
    faces = desc[3]
    assert faces["field"] == "max_num_faces"
    assert faces["range"] == [1, 4]
    assert faces["value"] == 1


class RecordingHost:
    def __init__(self):
        self.attached = []

    def attach(self, panel, controls):
        self.attached.append(list(controls))


def test_container_attached_on_add():
    host = RecordingHost()
    ControlPanel(host, DEFAULT_OPTIONS).add(default_controls(FpsMeter()))
    assert len(host.attached) == 1
    assert len(host.attached[0]) == 6


def test_second_add_attaches_only_new_controls():
    host = RecordingHost()
    controls = default_controls(FpsMeter())
    panel = ControlPanel(host, DEFAULT_OPTIONS).add(controls[:2]).add(controls[2:])

    attached = [c for batch in host.attached for c in batch]
    assert len(attached) == len(panel.controls) == 6
    assert all(attached.count(c) == 1 for c in controls)
