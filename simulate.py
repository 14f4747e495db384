#!/usr/bin/env python3
"""
Run a newborn internal state field through its first experiences.

Usage:
    # Birth sequence, print state after each disturbance:
    python simulate.py

    # Then let it think for 50 ticks on its structural biases:
    python simulate.py --ticks 50 --mode structural_bias

    # Add seeded internal drift:
    python simulate.py --ticks 100 --noise 0.01 --seed 7

    # Show debug logging from the engine:
    python simulate.py --log-level DEBUG
"""

import argparse
import json
import logging

from newborn.core.disturbance import Disturbance
from newborn.core.state_field import (
    HomeostasisConfig,
    InternalStateField,
    ReplayMode,
    StateFieldConfig,
)

BIRTH_SEQUENCE = [
    Disturbance(0.9, 0.1, 0.9),   # Sudden shock at birth
    Disturbance(0.3, 2.0, 0.1),   # Stabilizing
    Disturbance(0.4, 1.5, 0.2),   # Calm, long (rest)
]


def format_state(field):
    """Format physiology and dominant bias for display."""
    parts = [
        f"  Tension: {field.tension:.3f}  Stability: {field.stability:.3f}  Energy: {field.energy:.3f}",
        f"  Plasticity: shock={field.shock_sensitivity:.4f} "
        f"stability_gain={field.stability_gain_rate:.4f} energy_gain={field.energy_gain_rate:.4f}",
        f"  Traces: {field.trace_count}  Attractors: {len(field.repertoire)}",
    ]
    dominant = field.dominant_bias()
    if dominant is not None:
        parts.append(
            f"  Dominant: dt={dominant.dt_pref:+.4f} ds={dominant.ds_pref:+.4f} "
            f"de={dominant.de_pref:+.4f} strength={dominant.strength:.3f}"
        )
    return '\n'.join(parts)


def run_simulation(disturbances=None, ticks=0, mode=ReplayMode.TRACE_BASED,
                   noise=0.0, seed=None, on_step=None):
    """
    Apply disturbances in order, then run autonomous ticks.

    Returns the list of get_state() snapshots: one per disturbance, plus one
    after the ticks if any were run.
    """
    config = StateFieldConfig(
        replay_mode=mode,
        homeostasis=HomeostasisConfig(noise_amplitude=noise),
        seed=seed,
    )
    field = InternalStateField(config)
    snapshots = []

    for d in (BIRTH_SEQUENCE if disturbances is None else disturbances):
        field.apply_disturbance(d)
        snapshots.append(field.get_state())
        if on_step:
            on_step(f"after disturbance {d}", field)

    if ticks > 0:
        for _ in range(ticks):
            field.tick()
        snapshots.append(field.get_state())
        if on_step:
            on_step(f"after {ticks} ticks ({mode.value})", field)

    return snapshots


def main():
    parser = argparse.ArgumentParser(description="Simulate a newborn internal state field")
    parser.add_argument("--ticks", type=int, default=0, help="Thinking ticks after the birth sequence")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in ReplayMode],
        default=ReplayMode.TRACE_BASED.value,
        help="Replay mode for thinking ticks",
    )
    parser.add_argument("--noise", type=float, default=0.0, help="Internal drift amplitude")
    parser.add_argument("--seed", type=int, default=None, help="Seed for internal drift")
    parser.add_argument("--json", action="store_true", help="Print final state as JSON")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    def show(label, field):
        print(f"[{label}]")
        print(format_state(field))
        print()

    snapshots = run_simulation(
        ticks=args.ticks,
        mode=ReplayMode(args.mode),
        noise=args.noise,
        seed=args.seed,
        on_step=None if args.json else show,
    )

    if args.json:
        print(json.dumps(snapshots[-1], indent=2))


if __name__ == "__main__":
    main()
