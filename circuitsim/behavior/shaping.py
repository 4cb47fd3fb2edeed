"""
Property-to-resistance shaping for variable resistors.

These are not time-evolving: the editor's `ratio` or sensor reading is read
again on every tick and turned into the resistances the solver stamps.
"""

from __future__ import annotations
import numpy as np

LDR_MIN_RESISTANCE = 506.0       # Ohm, full light
LDR_MAX_RESISTANCE = 180_000.0   # Ohm, darkness


def potentiometer_halves(total: float, ratio: float, floor: float = 1e-3) -> tuple[float, float]:
    """
    Split a potentiometer track at the wiper.

    Args:
        total: End-to-end resistance [Ohm].
        ratio: Wiper position, 1 on terminal 1 ... 0 on terminal 2; clamped to [0, 1].
        floor: Minimum resistance of each half so the extremes stay finite.

    Returns:
        (R terminal1-wiper, R wiper-terminal2).
    """
    t = float(np.clip(ratio, 0.0, 1.0))
    return max(total * (1.0 - t), floor), max(total * t, floor)


def ldr_resistance(light_level: float) -> float:
    """
    Map a light level 0 (dark) ... 100 (bright) onto resistance, log-linearly.
    """
    t = 1.0 - float(np.clip(light_level, 0.0, 100.0)) / 100.0
    ln_min, ln_max = np.log(LDR_MIN_RESISTANCE), np.log(LDR_MAX_RESISTANCE)
    return float(np.round(np.exp(ln_min + t * (ln_max - ln_min))))
