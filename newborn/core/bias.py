# ═══════════════════════════════════════════════════════════════════════════════
# PART 3: BIAS ATTRACTORS / STRUCTURAL MEMORY
# Design: P1 (Dynamical Systems) + A5 (Continual Learning)
# Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
P1: "A single bias field averages 'calm builds stability' with 'shock builds
tension' and ends up believing neither. Memory needs basins, plural.
Each basin is a direction of change plus a depth."

A5: "New experience either deepens the nearest basin or carves a new one.
Basins that drift into each other get merged during consolidation, so the
repertoire stays small without anyone pruning it."
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

import numpy as np

from newborn.core.disturbance import EngineError

logger = logging.getLogger(__name__)


class EmptyRepertoireError(EngineError, LookupError):
    """Raised by BiasRepertoire.dominant() before any attractor has formed."""
    pass


@dataclass
class RepertoireConfig:
    """Configuration for attractor formation and consolidation."""
    # Learning
    reinforce_rate: float = 0.1        # Fraction of observed delta added per event
    strength_step: float = 0.05        # Depth gained per reinforcement
    decay_factor: float = 0.995        # Strength multiplier per tick

    # Matching (L1 distance, lower = more similar)
    match_threshold: float = 0.2       # Below this -> reinforce existing basin
    merge_threshold: float = 0.02      # Below this -> two basins are one

    # Consolidation cadence (experiences between merge passes)
    consolidation_interval: int = 1


class BiasAttractor:
    """
    Directional memory unit.

    preferred_direction = (dt_pref, ds_pref, de_pref): accumulated direction of
    physiological change. Reinforcement is additive drift, so the direction can
    grow past any single observation.

    strength: basin depth in [0, 1].
    """

    def __init__(
        self,
        id_: int,
        dt_pref: float = 0.0,
        ds_pref: float = 0.0,
        de_pref: float = 0.0,
        strength: float = 0.0,
        config: Optional[RepertoireConfig] = None,
    ) -> None:
        self.id = int(id_)
        self.config = config or RepertoireConfig()
        self.preferred_direction: np.ndarray = np.array(
            [dt_pref, ds_pref, de_pref], dtype=float
        )
        self.strength: float = float(np.clip(strength, 0.0, 1.0))

    # ── Properties ──────────────────────────────────────────────────────────

    @property
    def dt_pref(self) -> float:
        return float(self.preferred_direction[0])

    @property
    def ds_pref(self) -> float:
        return float(self.preferred_direction[1])

    @property
    def de_pref(self) -> float:
        return float(self.preferred_direction[2])

    # ── Methods ─────────────────────────────────────────────────────────────

    def similarity(self, dt: float, ds: float, de: float) -> float:
        """L1 distance to a candidate direction. Lower is more similar."""
        candidate = np.array([dt, ds, de], dtype=float)
        return float(np.sum(np.abs(self.preferred_direction - candidate)))

    def distance(self, other: BiasAttractor) -> float:
        """L1 distance between two preferred directions."""
        return float(
            np.sum(np.abs(self.preferred_direction - other.preferred_direction))
        )

    def reinforce(self, dt: float, ds: float, de: float) -> None:
        """Move preference toward the experienced direction and deepen the basin."""
        self.preferred_direction += np.array([dt, ds, de], dtype=float) * self.config.reinforce_rate
        self.strength = float(np.clip(self.strength + self.config.strength_step, 0.0, 1.0))

    def decay(self) -> None:
        """Slow forgetting. Direction is untouched."""
        self.strength = float(np.clip(self.strength * self.config.decay_factor, 0.0, 1.0))

    def merge(self, other: BiasAttractor) -> None:
        """
        Absorb another attractor into this one.

        Direction becomes the strength-weighted average of both directions
        (unchanged if both strengths are zero). Strength becomes the clamped
        sum: merging deepens the basin rather than averaging it.
        """
        total = self.strength + other.strength
        if total > 0.0:
            self.preferred_direction = (
                self.preferred_direction * self.strength
                + other.preferred_direction * other.strength
            ) / total

        self.strength = float(np.clip(total, 0.0, 1.0))

    def get_state(self) -> dict:
        """Serialize current state."""
        return {
            "id": self.id,
            "preferred_direction": self.preferred_direction.tolist(),
            "strength": self.strength,
        }

    def __repr__(self) -> str:
        return (
            f"BiasAttractor(id={self.id}, dt_pref={self.dt_pref:.4f}, "
            f"ds_pref={self.ds_pref:.4f}, de_pref={self.de_pref:.4f}, "
            f"strength={self.strength:.4f})"
        )


class BiasRepertoire:
    """
    Ordered collection of competing bias attractors.

    Order is creation order. It only matters for tie-breaks: the earliest
    created attractor wins equal-strength comparisons in dominant(),
    best-match selection and consolidation.
    """

    def __init__(self, config: Optional[RepertoireConfig] = None) -> None:
        self.config = config or RepertoireConfig()
        self.attractors: List[BiasAttractor] = []

        self._next_id: int = 0
        self._experiences_since_consolidation: int = 0

        # Counters
        self.total_experiences: int = 0
        self.total_spawned: int = 0
        self.total_merges: int = 0

    def __len__(self) -> int:
        return len(self.attractors)

    def __iter__(self) -> Iterator[BiasAttractor]:
        return iter(self.attractors)

    def __getitem__(self, index: int) -> BiasAttractor:
        return self.attractors[index]

    # ── Public Methods ──────────────────────────────────────────────────────

    def record_experience(self, dt: float, ds: float, de: float) -> BiasAttractor:
        """
        Fold one observed change of state into the repertoire.

        The closest attractor (lowest similarity score) is reinforced if it
        scores below match_threshold; otherwise a new attractor is spawned
        from this single experience. Consolidation follows on its cadence.

        Returns the attractor that absorbed the experience. It may since
        have been merged into a stronger one.
        """
        cfg = self.config
        self.total_experiences += 1

        best = self.best_match(dt, ds, de)
        if best is not None and best.similarity(dt, ds, de) < cfg.match_threshold:
            best.reinforce(dt, ds, de)
            target = best
            logger.debug("reinforced %r", best)
        else:
            target = self._spawn(dt, ds, de)

        self._experiences_since_consolidation += 1
        if self._experiences_since_consolidation >= cfg.consolidation_interval:
            self.consolidate()

        return target

    def best_match(self, dt: float, ds: float, de: float) -> Optional[BiasAttractor]:
        """Attractor with the lowest similarity score (earliest on ties), or None."""
        best: Optional[BiasAttractor] = None
        best_score = float("inf")

        for attractor in self.attractors:
            score = attractor.similarity(dt, ds, de)
            if score < best_score:
                best_score = score
                best = attractor

        return best

    def consolidate(self) -> int:
        """
        Merge near-duplicate attractors.

        Any pair closer than merge_threshold is merged weaker-into-stronger
        (earlier wins on equal strength) and the weaker is removed. Repeats
        until no such pair remains, since a merge moves the survivor.

        Returns the number of merges performed.
        """
        self._experiences_since_consolidation = 0
        merges = 0

        while True:
            pair = self._find_merge_pair()
            if pair is None:
                break

            keep, drop = pair
            keep.merge(drop)
            self.attractors.remove(drop)
            merges += 1
            logger.debug("merged attractor %d into %r", drop.id, keep)

        self.total_merges += merges
        return merges

    def decay_all(self) -> None:
        """Apply one tick of forgetting to every attractor."""
        for attractor in self.attractors:
            attractor.decay()

    def dominant(self) -> BiasAttractor:
        """
        Strongest attractor, earliest created on ties.

        Raises:
            EmptyRepertoireError: If no attractor has formed yet.
        """
        if not self.attractors:
            raise EmptyRepertoireError("no bias attractor has formed yet")

        best = self.attractors[0]
        for attractor in self.attractors[1:]:
            if attractor.strength > best.strength:
                best = attractor
        return best

    def get_state(self) -> dict:
        """Serialize current state."""
        return {
            "attractors": [a.get_state() for a in self.attractors],
            "total_experiences": self.total_experiences,
            "total_spawned": self.total_spawned,
            "total_merges": self.total_merges,
        }

    # ── Internal ────────────────────────────────────────────────────────────

    def _spawn(self, dt: float, ds: float, de: float) -> BiasAttractor:
        """Create a new attractor from a single experience."""
        cfg = self.config
        attractor = BiasAttractor(
            self._next_id,
            dt * cfg.reinforce_rate,
            ds * cfg.reinforce_rate,
            de * cfg.reinforce_rate,
            strength=cfg.strength_step,
            config=cfg,
        )
        self._next_id += 1
        self.total_spawned += 1
        self.attractors.append(attractor)
        logger.debug("spawned %r", attractor)
        return attractor

    def _find_merge_pair(self) -> Optional[tuple]:
        """First (keep, drop) pair closer than merge_threshold, in creation order."""
        threshold = self.config.merge_threshold

        for i, a in enumerate(self.attractors):
            for b in self.attractors[i + 1:]:
                if a.distance(b) < threshold:
                    # a was created first, so it survives an equal-strength merge
                    if b.strength > a.strength:
                        return b, a
                    return a, b

        return None
