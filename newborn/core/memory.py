# ═══════════════════════════════════════════════════════════════════════════════
# PART 2: EXPERIENCE TRACE MEMORY
# Design: A5 (Continual Learning) | Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════

"""
A5: "Raw traces are the cheapest memory there is: before, stimulus, after.
Replay finds the trace that started closest to where we are now and
re-enacts a fraction of it."

I3: "Cheap per trace, but it grows forever. The store needs a retention
policy written down, not an accident. Ring buffer, oldest out first."
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, Optional, Tuple

from newborn.core.disturbance import Disturbance

logger = logging.getLogger(__name__)

StateTriple = Tuple[float, float, float]

DEFAULT_TRACE_CAPACITY = 10_000


@dataclass(frozen=True)
class ExperienceTrace:
    """One state transition: (tension, stability, energy) before and after a disturbance."""
    before: StateTriple
    disturbance: Disturbance
    after: StateTriple

    @property
    def tension_before(self) -> float:
        return self.before[0]

    @property
    def stability_before(self) -> float:
        return self.before[1]

    @property
    def energy_before(self) -> float:
        return self.before[2]

    @property
    def tension_after(self) -> float:
        return self.after[0]

    @property
    def stability_after(self) -> float:
        return self.after[1]

    @property
    def energy_after(self) -> float:
        return self.after[2]

    @property
    def delta(self) -> StateTriple:
        """After minus before, per scalar."""
        return (
            self.after[0] - self.before[0],
            self.after[1] - self.before[1],
            self.after[2] - self.before[2],
        )

    def distance_to(self, tension: float, stability: float, energy: float) -> float:
        """L1 distance between this trace's before-state and the given state."""
        return (
            abs(tension - self.before[0])
            + abs(stability - self.before[1])
            + abs(energy - self.before[2])
        )

    def get_state(self) -> dict:
        """Serialize current state."""
        return {
            "before": list(self.before),
            "after": list(self.after),
            "disturbance": self.disturbance.get_state(),
        }


class TraceMemory:
    """
    Append-only trace store with bounded retention.

    capacity=None keeps every trace (unbounded growth). Otherwise the
    store is a ring buffer: once full, each append evicts the oldest trace.
    """

    def __init__(self, capacity: Optional[int] = DEFAULT_TRACE_CAPACITY) -> None:
        if capacity is not None and capacity < 1:
            raise ValueError(f"capacity must be >= 1 or None, got {capacity}")

        self.capacity = capacity
        self._traces: Deque[ExperienceTrace] = deque(maxlen=capacity)
        self.evicted: int = 0

    def __len__(self) -> int:
        return len(self._traces)

    def __iter__(self) -> Iterator[ExperienceTrace]:
        return iter(self._traces)

    def __getitem__(self, index: int) -> ExperienceTrace:
        return self._traces[index]

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and len(self._traces) >= self.capacity

    def append(self, trace: ExperienceTrace) -> None:
        """Store a trace, evicting the oldest one when at capacity."""
        if self.is_full:
            self.evicted += 1
            logger.debug("trace memory full (%d), evicting oldest trace", self.capacity)
        self._traces.append(trace)

    def nearest(
        self,
        tension: float,
        stability: float,
        energy: float,
    ) -> Optional[ExperienceTrace]:
        """
        Trace whose before-state is closest (L1) to the given state.

        Earliest stored trace wins ties. Returns None when empty.
        """
        best: Optional[ExperienceTrace] = None
        best_score = float("inf")

        for trace in self._traces:
            score = trace.distance_to(tension, stability, energy)
            if score < best_score:
                best_score = score
                best = trace

        return best

    def get_state(self) -> dict:
        """Serialize current state."""
        return {
            "capacity": self.capacity,
            "size": len(self._traces),
            "evicted": self.evicted,
        }
