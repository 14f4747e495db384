# ═══════════════════════════════════════════════════════════════════════════════
# PART 1: DISTURBANCE
# Design: N5 (Embodied Cognition) | Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
N5: "The world doesn't hand the body labelled events. It hands it pressure:
how hard, how long, how abrupt. Everything else is the body's own reading."

I2: "Then a disturbance is just three numbers. Shock and calm are derived,
never stored."
"""

from __future__ import annotations

import math
from dataclasses import dataclass


# ── Exceptions ───────────────────────────────────────────────────────────────


class EngineError(Exception):
    """Base class for internal state engine errors."""
    pass


class InvalidDisturbance(EngineError, ValueError):
    """Raised when a disturbance falls outside its documented ranges."""
    pass


# ── Disturbance ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Disturbance:
    """
    One external stimulus.

    Ranges are documented, not enforced at construction:
    - intensity: 0.0 -> 1.0
    - duration: >= 0 (time units)
    - suddenness: 0.0 smooth, 1.0 shock

    Call validate() (or let InternalStateField do it) to reject values
    outside those ranges.
    """
    intensity: float
    duration: float
    suddenness: float

    @property
    def shock(self) -> float:
        """Sudden + intense -> shock."""
        return self.intensity * self.suddenness

    @property
    def calm(self) -> float:
        """Long + predictable -> calm."""
        return self.duration * (1.0 - self.suddenness)

    def validate(self) -> "Disturbance":
        """
        Check documented ranges.

        Returns self so it can be chained.

        Raises:
            InvalidDisturbance: If any field is out of range or not finite.
        """
        for name in ("intensity", "duration", "suddenness"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise InvalidDisturbance(f"{name} must be finite, got {value!r}")

        if not 0.0 <= self.intensity <= 1.0:
            raise InvalidDisturbance(
                f"intensity must be in [0, 1], got {self.intensity}"
            )
        if not 0.0 <= self.suddenness <= 1.0:
            raise InvalidDisturbance(
                f"suddenness must be in [0, 1], got {self.suddenness}"
            )
        if self.duration < 0.0:
            raise InvalidDisturbance(
                f"duration must be >= 0, got {self.duration}"
            )
        return self

    def get_state(self) -> dict:
        """Serialize current state."""
        return {
            "intensity": self.intensity,
            "duration": self.duration,
            "suddenness": self.suddenness,
            "shock": self.shock,
            "calm": self.calm,
        }
