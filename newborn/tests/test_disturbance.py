"""Tests for Disturbance."""

import dataclasses

import pytest

from newborn.core.disturbance import Disturbance, EngineError, InvalidDisturbance


# ── Derived quantities ──────────────────────────────────────────────────────


def test_shock_is_intensity_times_suddenness():
    d = Disturbance(0.9, 0.1, 0.9)
    assert d.shock == pytest.approx(0.81)


def test_calm_is_duration_times_smoothness():
    d = Disturbance(0.3, 2.0, 0.1)
    assert d.calm == pytest.approx(1.8)


def test_pure_shock_has_no_calm():
    d = Disturbance(1.0, 5.0, 1.0)
    assert d.calm == 0.0
    assert d.shock == 1.0


def test_immutable():
    """Disturbances are values, never mutated."""
    d = Disturbance(0.5, 1.0, 0.5)
    with pytest.raises(dataclasses.FrozenInstanceError):
        d.intensity = 0.9


def test_equality_by_value():
    assert Disturbance(0.5, 1.0, 0.3) == Disturbance(0.5, 1.0, 0.3)


# ── Validation ──────────────────────────────────────────────────────────────


def test_construction_is_permissive():
    """Out-of-range values are only rejected by validate()."""
    d = Disturbance(2.0, -1.0, 1.5)
    assert d.intensity == 2.0


def test_validate_accepts_boundaries():
    d = Disturbance(0.0, 0.0, 1.0)
    assert d.validate() is d
    Disturbance(1.0, 100.0, 0.0).validate()


@pytest.mark.parametrize("intensity, duration, suddenness", [
    (-0.1, 1.0, 0.5),
    (1.1, 1.0, 0.5),
    (0.5, -0.01, 0.5),
    (0.5, 1.0, -0.5),
    (0.5, 1.0, 1.01),
    (float("nan"), 1.0, 0.5),
    (0.5, float("inf"), 0.5),
])
def test_validate_rejects_out_of_range(intensity, duration, suddenness):
    with pytest.raises(InvalidDisturbance):
        Disturbance(intensity, duration, suddenness).validate()


def test_invalid_disturbance_hierarchy():
    """Callers can catch it as a ValueError or as an engine error."""
    assert issubclass(InvalidDisturbance, ValueError)
    assert issubclass(InvalidDisturbance, EngineError)


def test_get_state():
    state = Disturbance(0.4, 1.5, 0.2).get_state()

    assert state["intensity"] == 0.4
    assert state["duration"] == 1.5
    assert state["suddenness"] == 0.2
    assert state["shock"] == pytest.approx(0.08)
    assert state["calm"] == pytest.approx(1.2)
