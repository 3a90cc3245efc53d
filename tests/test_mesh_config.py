from __future__ import annotations

import pytest

from facemesh_demo.mesh_config import DEFAULT_OPTIONS, merge_options


def test_defaults():
    assert DEFAULT_OPTIONS.as_dict() == {
        "selfie_mode": True,
        "max_num_faces": 1,
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
    }


def test_merge_ignores_unknown_and_none():
    assert merge_options(DEFAULT_OPTIONS, {"bogus": 1, "max_num_faces": None}) is DEFAULT_OPTIONS


def test_merge_clamps_to_widget_ranges():
    opts = merge_options(DEFAULT_OPTIONS, {
        "max_num_faces": 12,
        "min_detection_confidence": -0.5,
        "min_tracking_confidence": "0.75",
        "selfie_mode": 0,
    })
    assert opts.max_num_faces == 4
    assert opts.min_detection_confidence == 0.0
    assert opts.min_tracking_confidence == pytest.approx(0.75)
    assert opts.selfie_mode is False


def test_model_params_exclude_mirroring():
    params = DEFAULT_OPTIONS.model_params()
    assert "selfie_mode" not in params
    assert params["max_num_faces"] == 1
