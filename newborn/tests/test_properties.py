"""Behavioural properties of the internal state engine over whole experience sequences."""

import numpy as np
import pytest

from newborn.core.disturbance import Disturbance
from newborn.core.state_field import (
    HomeostasisConfig,
    InternalStateField,
    ReplayMode,
    StateFieldConfig,
)


def assert_bounded(field):
    assert 0.0 <= field.tension <= 1.5
    assert 0.0 <= field.stability <= 1.0
    assert 0.0 <= field.energy <= 1.0
    assert 0.05 <= field.shock_sensitivity <= 0.5
    assert 0.01 <= field.stability_gain_rate <= 0.2
    assert 0.05 <= field.energy_gain_rate <= 0.3
    for attractor in field.repertoire:
        assert 0.0 <= attractor.strength <= 1.0


# ── Boundedness ─────────────────────────────────────────────────────────────


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_random_histories_stay_bounded(seed):
    """Any mix of disturbances, ticks and mode switches stays in range."""
    rng = np.random.default_rng(seed)
    config = StateFieldConfig(homeostasis=HomeostasisConfig(noise_amplitude=0.02), seed=seed)
    field = InternalStateField(config)
    modes = list(ReplayMode)

    for step in range(400):
        roll = rng.random()
        if roll < 0.4:
            field.apply_disturbance(
                float(rng.random()),
                float(rng.uniform(0.0, 5.0)),
                float(rng.random()),
            )
        elif roll < 0.45:
            field.replay_mode = modes[int(rng.integers(len(modes)))]
        else:
            field.tick()
        assert_bounded(field)


# ── Repetition ──────────────────────────────────────────────────────────────


def test_repeated_experience_builds_stronger_bias():
    field = InternalStateField()
    d = Disturbance(0.6, 1.0, 0.2)

    strengths = []
    for _ in range(10):
        field.apply_disturbance(d)
        strengths.append(field.repertoire.dominant().strength)

    assert len(field.repertoire) == 1
    assert all(b > a for a, b in zip(strengths, strengths[1:]))
    assert field.repertoire.dominant().strength > 0.4


def test_bias_memory_does_not_grow_unbounded():
    field = InternalStateField()
    d = Disturbance(0.5, 1.0, 0.3)

    for _ in range(1000):
        field.apply_disturbance(d)

    for attractor in field.repertoire:
        assert attractor.strength <= 1.0
    assert len(field.repertoire) <= 5
    assert_bounded(field)


# ── Competing basins ────────────────────────────────────────────────────────


def test_dominant_bias_controls_thinking():
    """Sustained calm outweighs a brief burst of shock."""
    field = InternalStateField()
    calm = Disturbance(0.3, 3.0, 0.1)
    shock = Disturbance(0.9, 0.2, 0.9)

    for _ in range(10):
        field.apply_disturbance(calm)
    for _ in range(3):
        field.apply_disturbance(shock)

    dominant = field.repertoire.dominant()
    assert abs(dominant.ds_pref) > abs(dominant.dt_pref)


def test_shock_forms_its_own_basin():
    """Shock is learned as a separate tension-led attractor, not averaged into calm."""
    field = InternalStateField()
    for _ in range(10):
        field.apply_disturbance(0.3, 3.0, 0.1)
    for _ in range(3):
        field.apply_disturbance(0.9, 0.2, 0.9)

    assert len(field.repertoire) == 2
    calm_basin, shock_basin = field.repertoire
    assert field.repertoire.dominant() is calm_basin
    assert abs(shock_basin.dt_pref) > abs(shock_basin.ds_pref)
    assert shock_basin.strength < calm_basin.strength


# ── Replay ──────────────────────────────────────────────────────────────────


def test_bias_smooths_noisy_experience():
    field = InternalStateField(StateFieldConfig(replay_mode=ReplayMode.STRUCTURAL_BIAS))
    noisy = [
        Disturbance(0.8, 0.2, 0.9),
        Disturbance(0.2, 3.0, 0.1),
        Disturbance(0.7, 0.3, 0.8),
        Disturbance(0.3, 2.5, 0.1),
    ]
    for d in noisy:
        field.apply_disturbance(d)

    before = field.tension
    for _ in range(100):
        field.tick()

    assert abs(field.tension - before) < 0.2, "Bias replay caused unstable drift"


def test_compare_trace_and_structural_replay():
    """Both replay strategies settle into similar macro-behaviour."""
    disturbances = [
        Disturbance(0.9, 0.1, 0.9),
        Disturbance(0.3, 2.0, 0.1),
        Disturbance(0.4, 1.5, 0.2),
    ]

    trace_field = InternalStateField(StateFieldConfig(replay_mode=ReplayMode.TRACE_BASED))
    bias_field = InternalStateField(StateFieldConfig(replay_mode=ReplayMode.STRUCTURAL_BIAS))

    for field in (trace_field, bias_field):
        for d in disturbances:
            field.apply_disturbance(d)
        for _ in range(50):
            field.tick()

    assert abs(trace_field.tension - bias_field.tension) < 0.05, "Tension drift mismatch too large"
    assert abs(trace_field.stability - bias_field.stability) < 0.05, "Stability drift mismatch too large"


# ── Empty state ─────────────────────────────────────────────────────────────


@pytest.mark.parametrize("mode", list(ReplayMode))
def test_tick_before_any_experience(mode):
    """Thinking with no history is homeostasis only."""
    field = InternalStateField(StateFieldConfig(replay_mode=mode))
    field.tick()

    # Birth state sits inside every homeostatic band
    assert field.physiology == (0.5, 0.1, 0.5)
    assert len(field.repertoire) == 0
