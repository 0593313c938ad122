"""
Tests for OpReport validation and serialization.
"""

import json

import pytest

from cop_slam.common.op_report import OpReport


def test_valid_report():
    """A consistent report validates."""
    report = OpReport(
        name="LoopClosureCorrection",
        exact=True,
        metrics={"residual_rot_after": 0.0, "residual_trans_after": 1e-12},
    )
    report.validate()


def test_exact_with_triggers_rejected():
    """Exact reports cannot carry approximation triggers."""
    report = OpReport(name="LoopClosureCorrection", exact=True, approximation_triggers=["OrientationOnly"])
    with pytest.raises(ValueError):
        report.validate()


def test_closed_form_with_solver_rejected():
    """Closed-form reports cannot name a solver."""
    report = OpReport(name="LoopClosureCorrection", exact=False, solver_used="gauss_newton")
    with pytest.raises(ValueError):
        report.validate()


def test_negative_residual_rejected():
    """Negative residual metrics are rejected."""
    report = OpReport(name="LoopClosureCorrection", exact=False, metrics={"residual_trans_before": -1.0})
    with pytest.raises(ValueError):
        report.validate()


def test_unnamed_rejected():
    """Reports must name their operator."""
    with pytest.raises(ValueError):
        OpReport(name="", exact=False).validate()


def test_json_round_trip():
    """to_json() serializes the same content as to_dict()."""
    report = OpReport(
        name="LoopClosureCorrection",
        exact=False,
        approximation_triggers=["TwoPassTranslationFrame"],
        metrics={"start": 2, "end": 9, "method": "twopass"},
        notes="test",
    )
    data = json.loads(report.to_json())
    assert data["name"] == "LoopClosureCorrection"
    assert data["approximation_triggers"] == ["TwoPassTranslationFrame"]
    assert data["metrics"]["end"] == 9
    assert data == report.to_dict()
