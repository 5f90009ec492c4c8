# Tests for building application state from command-line options.

import argparse
import json

import pytest

import config as cfg
from main import build_state
from model import ContinuousMode, no_noise


def _args(**overrides):
    opts = dict(coefficients=None, mode=cfg.CONTINUOUS_MODE, wtp_scale=cfg.WTP_SCALE,
                noise=0.0, seed=None)
    opts.update(overrides)
    return argparse.Namespace(**opts)


def test_defaults():
    state = build_state(_args())
    assert state.continuous_mode is ContinuousMode.ABSOLUTE
    assert state.noise is None
    assert state.wtp_scale == cfg.WTP_SCALE
    assert state.coefficients.asc == cfg.ASC


def test_mode_and_noise():
    state = build_state(_args(mode="offset-from-baseline", noise=2.0, seed=1))
    assert state.continuous_mode is ContinuousMode.OFFSET
    assert state.noise is not None and state.noise is not no_noise
    assert -2.0 <= state.noise() <= 2.0


def test_coefficient_file(tmp_path):
    data = {
        "asc": 0.5,
        "asc_optout": 0.0,
        "levels": {
            "training_level": cfg.TRAINING_LEVEL_WEIGHTS,
            "delivery_method": cfg.DELIVERY_METHOD_WEIGHTS,
            "accreditation": cfg.ACCREDITATION_WEIGHTS,
            "location": cfg.LOCATION_WEIGHTS,
        },
        "references": cfg.REFERENCE_LEVELS,
        "continuous": {"cohort_size": -0.001, "cost_per_participant": -0.0002},
    }
    path = tmp_path / "table.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    state = build_state(_args(coefficients=str(path)))
    assert state.coefficients.asc == 0.5
    assert state.coefficients.cost_slope == pytest.approx(-0.0002)
