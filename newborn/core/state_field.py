# ═══════════════════════════════════════════════════════════════════════════════
# PART 4: INTERNAL STATE FIELD (putting it all together)
# Design: N5 (Embodied Cognition) + A5 (Continual Learning) + P1 (Dynamics)
# Implementation: I1 (Systems Architect)
# ═══════════════════════════════════════════════════════════════════════════════

"""
N5: "Born with three numbers: tension, stability, energy. The parameters that
decide how those numbers move are not fixed either. A body that has been
shocked a hundred times while regulated stops flinching."

A5: "Two memories side by side. Raw traces for replaying what actually
happened, attractors for drifting along what usually happens. One switch
chooses which one thinks when nothing is happening outside."

I1: "Homeostasis is shared. Whatever replays, the body still balances
itself and still forgets."
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from newborn.core.bias import (
    BiasAttractor,
    BiasRepertoire,
    EmptyRepertoireError,
    RepertoireConfig,
)
from newborn.core.disturbance import Disturbance, InvalidDisturbance
from newborn.core.memory import DEFAULT_TRACE_CAPACITY, ExperienceTrace, TraceMemory

logger = logging.getLogger(__name__)

Range = Tuple[float, float]


class ReplayMode(Enum):
    """Strategy for autonomous evolution between disturbances."""
    TRACE_BASED = "trace_based"            # Nearest raw trace, partial re-enactment
    STRUCTURAL_BIAS = "structural_bias"    # Drift along the dominant attractor


@dataclass
class PlasticityConfig:
    """Birth values, bounds and meta-learning rules for response parameters."""
    # Newborn defaults (low at birth)
    shock_sensitivity: float = 0.2
    stability_gain_rate: float = 0.05
    energy_gain_rate: float = 0.1

    # Soft bounds
    shock_sensitivity_range: Range = (0.05, 0.5)
    stability_gain_rate_range: Range = (0.01, 0.2)
    energy_gain_rate_range: Range = (0.05, 0.3)

    # Shock drains energy as a fraction of the gain rate
    shock_energy_cost: float = 0.05

    # Rule 1: repeated shock + high stability -> desensitization
    desensitize_shock_threshold: float = 0.3
    desensitize_stability_threshold: float = 0.6
    desensitize_factor: float = 0.98

    # Rule 2: prolonged calm -> faster regulation learning
    calm_threshold: float = 1.0
    calm_learning_factor: float = 1.02

    # Rule 3: chronic overload -> energy efficiency
    overload_tension_threshold: float = 1.0
    overload_efficiency_factor: float = 0.99


@dataclass
class HomeostasisConfig:
    """Self-regulation applied once per tick, regardless of replay mode."""
    low_tension_threshold: float = 0.4     # Below this, stability consolidates
    stability_recovery: float = 0.01

    energy_high: float = 0.6               # Above -> settle
    energy_low: float = 0.4                # Below -> recover
    energy_step: float = 0.01

    # Tension released per unit of stability per tick (0 = off)
    tension_release_rate: float = 0.0

    # Internal drift on tension and energy (0 = off)
    noise_amplitude: float = 0.0


@dataclass
class StateFieldConfig:
    """Top-level configuration aggregating all component configs."""
    # Initial DNA-defined state
    tension: float = 0.5                   # Neutral
    stability: float = 0.1                 # Newborn = unstable
    energy: float = 0.5                    # Baseline

    # Physical bounds
    tension_range: Range = (0.0, 1.5)
    stability_range: Range = (0.0, 1.0)
    energy_range: Range = (0.0, 1.0)

    # Component configs (optional - defaults used if None)
    plasticity: Optional[PlasticityConfig] = None
    homeostasis: Optional[HomeostasisConfig] = None
    repertoire: Optional[RepertoireConfig] = None

    # Replay
    replay_mode: ReplayMode = ReplayMode.TRACE_BASED
    bias_replay_gain: float = 0.05         # Scales pref * strength per tick
    trace_replay_gain: float = 0.2         # Fraction of a trace re-enacted per tick
    trace_capacity: Optional[int] = DEFAULT_TRACE_CAPACITY

    # Input handling
    validate_disturbances: bool = True

    # Seed for the internal drift generator when none is injected
    seed: Optional[int] = None


def _clip(value: float, bounds: Range) -> float:
    return float(np.clip(value, bounds[0], bounds[1]))


def _replay_step(current: float, delta: float, gain: float, remembered: float) -> float:
    """Move by gain * delta, never past the remembered outcome."""
    stepped = current + delta * gain
    if delta > 0.0:
        return max(current, min(stepped, remembered))
    if delta < 0.0:
        return min(current, max(stepped, remembered))
    return current


class InternalStateField:
    """
    Internal state of a body after birth.

    Physiology:  tension [0, 1.5], stability [0, 1], energy [0, 1]
    Plasticity:  shock_sensitivity, stability_gain_rate, energy_gain_rate
                 (themselves adapted by experience)
    Memory:      trace memory (raw transitions) and a bias repertoire
                 (structural attractors)

    apply_disturbance() handles external input; tick() evolves the state
    when there is none.

    One instance is one subject. Instances share nothing, so independent
    subjects can be simulated side by side without synchronization.
    """

    def __init__(
        self,
        config: Optional[StateFieldConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.config = config or StateFieldConfig()
        cfg = self.config
        self.plasticity_config = cfg.plasticity or PlasticityConfig()
        self.homeostasis_config = cfg.homeostasis or HomeostasisConfig()
        pcfg = self.plasticity_config

        # Core physiological states
        self.tension: float = _clip(cfg.tension, cfg.tension_range)
        self.stability: float = _clip(cfg.stability, cfg.stability_range)
        self.energy: float = _clip(cfg.energy, cfg.energy_range)

        # Plasticity parameters (learning happens here over time)
        self.shock_sensitivity: float = _clip(pcfg.shock_sensitivity, pcfg.shock_sensitivity_range)
        self.stability_gain_rate: float = _clip(pcfg.stability_gain_rate, pcfg.stability_gain_rate_range)
        self.energy_gain_rate: float = _clip(pcfg.energy_gain_rate, pcfg.energy_gain_rate_range)

        # Memory
        self.traces = TraceMemory(cfg.trace_capacity)
        self.repertoire = BiasRepertoire(cfg.repertoire)
        self.replay_mode: ReplayMode = cfg.replay_mode

        # Internal drift source
        self.rng = rng if rng is not None else np.random.default_rng(cfg.seed)

        # Counters
        self.disturbance_count: int = 0
        self.tick_count: int = 0

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def physiology(self) -> Tuple[float, float, float]:
        """(tension, stability, energy)."""
        return (self.tension, self.stability, self.energy)

    @property
    def trace_count(self) -> int:
        return len(self.traces)

    # ── Public Methods ───────────────────────────────────────────────────────

    def apply_disturbance(
        self,
        disturbance: Union[Disturbance, float],
        duration: Optional[float] = None,
        suddenness: Optional[float] = None,
    ) -> None:
        """
        React to one external event.

        Accepts a Disturbance, or (intensity, duration, suddenness).

        Order matters:
        1. Snapshot state
        2. Physiological response (shock -> tension, calm -> stability)
        3. Plasticity update, reading the already-updated physiology
        4. Clamp everything
        5. Record the change in the bias repertoire
        6. Append an experience trace

        Raises:
            InvalidDisturbance: If validation is enabled and the disturbance
                is out of range. State is untouched in that case.
        """
        d = self._coerce_disturbance(disturbance, duration, suddenness)

        if self.config.validate_disturbances:
            try:
                d.validate()
            except InvalidDisturbance:
                logger.warning("rejected disturbance %r", d)
                raise

        cfg = self.config
        pcfg = self.plasticity_config
        self.disturbance_count += 1

        # 1. Snapshot
        before = self.physiology

        # 2. Physiological response
        shock = d.shock
        calm = d.calm

        self.tension += shock * self.shock_sensitivity
        self.stability += calm * self.stability_gain_rate

        # Overall intensity feeds energy, shock drains a little of it
        self.energy += d.intensity * self.energy_gain_rate
        self.energy -= shock * self.energy_gain_rate * pcfg.shock_energy_cost

        # 3. Plasticity
        self._update_plasticity(shock, calm)

        # 4. Physical bounds
        self._clamp_physiology()

        # 5. Structural memory
        after = self.physiology
        dt = after[0] - before[0]
        ds = after[1] - before[1]
        de = after[2] - before[2]
        self.repertoire.record_experience(dt, ds, de)

        # 6. Trace memory
        self.traces.append(ExperienceTrace(before=before, disturbance=d, after=after))

        logger.debug(
            "disturbance %d applied: shock=%.3f calm=%.3f -> %s",
            self.disturbance_count, shock, calm, after,
        )

    def tick(self) -> None:
        """
        Internal thinking / resting dynamics.

        Runs when there is NO disturbance:
        1. Replay (mode-dependent)
        2. Homeostasis (shared)
        3. Forgetting: every attractor decays
        4. Internal drift (only if noise_amplitude > 0)
        5. Clamp physiology
        """
        self.tick_count += 1

        if self.replay_mode is ReplayMode.STRUCTURAL_BIAS:
            self._bias_replay()
        else:
            self._trace_replay()

        self._homeostasis()
        self.repertoire.decay_all()
        self._internal_drift()
        self._clamp_physiology()

    def dominant_bias(self) -> Optional[BiasAttractor]:
        """Dominant attractor, or None before any has formed."""
        try:
            return self.repertoire.dominant()
        except EmptyRepertoireError:
            return None

    def get_state(self) -> dict:
        """Serialize current state."""
        dominant = self.dominant_bias()
        return {
            "tension": self.tension,
            "stability": self.stability,
            "energy": self.energy,
            "shock_sensitivity": self.shock_sensitivity,
            "stability_gain_rate": self.stability_gain_rate,
            "energy_gain_rate": self.energy_gain_rate,
            "replay_mode": self.replay_mode.value,
            "disturbance_count": self.disturbance_count,
            "tick_count": self.tick_count,
            "trace_count": self.trace_count,
            "traces": self.traces.get_state(),
            "repertoire": self.repertoire.get_state(),
            "dominant": dominant.get_state() if dominant is not None else None,
        }

    # ── Internal ─────────────────────────────────────────────────────────────

    @staticmethod
    def _coerce_disturbance(
        disturbance: Union[Disturbance, float],
        duration: Optional[float],
        suddenness: Optional[float],
    ) -> Disturbance:
        if isinstance(disturbance, Disturbance):
            if duration is not None or suddenness is not None:
                raise TypeError("pass either a Disturbance or three scalars, not both")
            return disturbance

        if duration is None or suddenness is None:
            raise TypeError("apply_disturbance needs intensity, duration and suddenness")
        return Disturbance(float(disturbance), float(duration), float(suddenness))

    def _update_plasticity(self, shock: float, calm: float) -> None:
        """Meta-learning rules, applied in fixed order."""
        pcfg = self.plasticity_config

        # Rule 1: repeated shock + high stability -> less sensitive to shocks
        if (
            shock > pcfg.desensitize_shock_threshold
            and self.stability > pcfg.desensitize_stability_threshold
        ):
            self.shock_sensitivity *= pcfg.desensitize_factor
            logger.debug("desensitized: shock_sensitivity=%.4f", self.shock_sensitivity)

        # Rule 2: prolonged calm -> learn to stabilize faster
        if calm > pcfg.calm_threshold:
            self.stability_gain_rate *= pcfg.calm_learning_factor
            logger.debug("calm learning: stability_gain_rate=%.4f", self.stability_gain_rate)

        # Rule 3: chronic overload -> more efficient with energy
        if self.tension > pcfg.overload_tension_threshold:
            self.energy_gain_rate *= pcfg.overload_efficiency_factor
            logger.debug("overload: energy_gain_rate=%.4f", self.energy_gain_rate)

        self.shock_sensitivity = _clip(self.shock_sensitivity, pcfg.shock_sensitivity_range)
        self.stability_gain_rate = _clip(self.stability_gain_rate, pcfg.stability_gain_rate_range)
        self.energy_gain_rate = _clip(self.energy_gain_rate, pcfg.energy_gain_rate_range)

    def _bias_replay(self) -> None:
        """Drift along the dominant attractor, scaled by its depth."""
        try:
            bias = self.repertoire.dominant()
        except EmptyRepertoireError:
            return

        gain = bias.strength * self.config.bias_replay_gain
        self.tension += bias.dt_pref * gain
        self.stability += bias.ds_pref * gain
        self.energy += bias.de_pref * gain

    def _trace_replay(self) -> None:
        """Re-enact part of the trace that started closest to the current state."""
        trace = self.traces.nearest(self.tension, self.stability, self.energy)
        if trace is None:
            return

        gain = self.config.trace_replay_gain
        dt, ds, de = trace.delta
        self.tension = _replay_step(self.tension, dt, gain, trace.tension_after)
        self.stability = _replay_step(self.stability, ds, gain, trace.stability_after)
        self.energy = _replay_step(self.energy, de, gain, trace.energy_after)

    def _homeostasis(self) -> None:
        hcfg = self.homeostasis_config

        # Stable brain releases tension over time
        if hcfg.tension_release_rate > 0.0:
            self.tension -= self.stability * hcfg.tension_release_rate

        # Low stress consolidates regulation
        if self.tension < hcfg.low_tension_threshold:
            self.stability += hcfg.stability_recovery

        # Energy redistributes toward the mid-band
        if self.energy > hcfg.energy_high:
            self.energy -= hcfg.energy_step
        elif self.energy < hcfg.energy_low:
            self.energy += hcfg.energy_step

    def _internal_drift(self) -> None:
        """Small spontaneous fluctuation so the field never freezes."""
        amplitude = self.homeostasis_config.noise_amplitude
        if amplitude <= 0.0:
            return

        noise = self.rng.random(2) - 0.5
        self.tension += float(noise[0]) * amplitude
        self.energy += float(noise[1]) * amplitude

    def _clamp_physiology(self) -> None:
        cfg = self.config
        self.tension = _clip(self.tension, cfg.tension_range)
        self.stability = _clip(self.stability, cfg.stability_range)
        self.energy = _clip(self.energy, cfg.energy_range)
