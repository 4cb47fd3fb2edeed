from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Mapping
import zlib
import numpy as np

from ..config import LED_LIMITS, LedLimits
from ..snapshot import LedRuntime

# Forward knee per colour [V]; red sits low so a single AA cell gives a faint glow.
FORWARD_VOLTAGE = {
    "red": 1.0,
    "orange": 1.8,
    "yellow": 1.9,
    "green": 2.0,
    "blue": 2.8,
    "white": 2.8,
}
DEFAULT_FORWARD_VOLTAGE = 2.0

# Effective series resistance while conducting [Ohm].
SERIES_RESISTANCE = {"red": 6.856}
DEFAULT_SERIES_RESISTANCE = 6.2

RGB_FORWARD_VOLTAGE = {"red": 2.0, "green": 3.0, "blue": 3.2}
RGB_SERIES_RESISTANCE = {"red": 6.856, "green": 5.5, "blue": 5.5}


def forward_voltage(color: str | None) -> float:
    return FORWARD_VOLTAGE.get((color or "red").lower(), DEFAULT_FORWARD_VOLTAGE)


def series_resistance(color: str | None) -> float:
    return SERIES_RESISTANCE.get((color or "red").lower(), DEFAULT_SERIES_RESISTANCE)


def led_parameters(properties: Mapping[str, Any]) -> tuple[float, float]:
    """(forward voltage, series resistance) of a single-colour LED; explicit properties win."""
    color = properties.get("color")
    vf = properties.get("forwardVoltage")
    rs = properties.get("seriesResistance")
    return (float(vf) if vf is not None else forward_voltage(color),
            float(rs) if rs is not None else series_resistance(color))


def element_seed(element_id: str, base_seed: int = 0, channel: str | None = None) -> int:
    """Stable per-element seed (same id and base seed, same failure timing)."""
    key = f"{base_seed}:{element_id}:{channel or ''}"
    return zlib.crc32(key.encode("utf-8"))


def initial_led_runtime(seed: int = 0) -> LedRuntime:
    rng = np.random.default_rng(seed)
    return LedRuntime(seed=seed, flicker_seed=float(rng.uniform(0.0, 1000.0)))


def explosion_delay_ms(seed: int, limits: LedLimits = LED_LIMITS) -> float:
    lo, hi = limits.explosion_delay_ms
    return float(np.random.default_rng([seed, 1]).uniform(lo, hi))


@dataclass(frozen=True)
class LedElectrical:
    """Solved quantities fed to the LED state machine (anode minus cathode)."""
    forward_voltage: float = 0.0
    current: float = 0.0
    power: float | None = None


def _explode(rt: LedRuntime, energy: float, now_ms: float, reason: str | None,
             current: float, limits: LedLimits) -> LedRuntime:
    return replace(
        rt,
        brightness=0.0,
        thermal_energy=max(energy, limits.explosion_threshold),
        exploded=True,
        pending_explosion_at=None,
        smoke_started_at=rt.smoke_started_at if rt.smoke_started_at is not None else now_ms,
        failure_reason=reason,
        visual_state="exploded",
        explosion_current=current,
        last_update_at=now_ms,
    )


def update_led_runtime(prev: LedRuntime | None, electrical: LedElectrical, dt: float, now_ms: float,
                       vf: float, limits: LedLimits = LED_LIMITS) -> LedRuntime:
    """
    Advance the LED thermal/failure state machine by one tick.

    States are off, on, hot and exploded; exploded is terminal. Order of rules:

    1. An exploded LED stays exploded.
    2. Low-voltage guard: with |forward voltage| <= `low_voltage_guard` the LED may
       light but only cools, and any armed explosion is disarmed.
    3. Reverse voltage above the rating explodes immediately.
    4. Forward current or power at `hard_overstress_factor` x rating explodes immediately.
    5. Otherwise thermal energy integrates stress:
       E += (base_heating + stress * thermal_gain) * dt while conducting,
       E -= cooldown_per_sec * dt while blocking, clamped to [0, max_energy].
       Without stress, self-heating settles at `resting_energy`.
    6. Reaching `explosion_threshold` arms a seeded 200-300 ms timer; when it
       expires the LED explodes whatever the drive.

    Args:
        prev: Previous runtime (None starts cold).
        electrical: Forward voltage, current and power from the solver.
        dt: Seconds since the previous tick (>= 0).
        now_ms: Monotonic timestamp [ms].
        vf: Forward voltage of this die [V].
        limits: Ratings and thermal constants.

    Returns:
        The next LedRuntime.
    """
    if dt < 0:
        raise ValueError("dt must be non-negative.")
    rt = prev if prev is not None else initial_led_runtime()
    fwd_v = float(electrical.forward_voltage)
    current = float(electrical.current)
    power = float(electrical.power) if electrical.power is not None else fwd_v * current
    reverse_v = -fwd_v if fwd_v < 0 else 0.0

    if rt.exploded:
        return replace(
            rt,
            brightness=0.0,
            thermal_energy=max(rt.thermal_energy, limits.explosion_threshold),
            visual_state="exploded",
            explosion_current=current,
            last_update_at=now_ms,
        )

    forward_on = fwd_v >= vf and current > 0
    i_fwd = max(current, 0.0) if forward_on else 0.0
    p_fwd = max(power, 0.0) if forward_on else 0.0

    if abs(fwd_v) <= limits.low_voltage_guard:
        brightness = float(np.clip(i_fwd / limits.max_current, 0.0, 1.0))
        return replace(
            rt,
            brightness=brightness,
            thermal_energy=max(0.0, rt.thermal_energy - limits.cooldown_per_sec * dt),
            pending_explosion_at=None,
            smoke_started_at=None,
            failure_reason=None,
            visual_state="on" if forward_on and brightness > 0 else "off",
            last_update_at=now_ms,
        )

    if reverse_v > limits.max_reverse_voltage:
        return _explode(rt, rt.thermal_energy, now_ms, "reverse", current, limits)

    hard_i = limits.max_current * limits.hard_overstress_factor
    hard_p = limits.max_power * limits.hard_overstress_factor
    if forward_on and (i_fwd >= hard_i or p_fwd >= hard_p):
        reason = "overpower" if p_fwd > limits.max_power else "overcurrent"
        return _explode(rt, rt.thermal_energy, now_ms, reason, current, limits)

    over_i = max(0.0, (i_fwd - limits.max_current) / limits.max_current)
    over_p = max(0.0, (p_fwd - limits.max_power) / limits.max_power)
    stress = max(over_i, over_p)

    energy = rt.thermal_energy
    if not forward_on:
        energy = max(0.0, energy - limits.cooldown_per_sec * dt)
    elif stress > 0:
        energy += (limits.base_heating + stress * limits.thermal_gain) * dt
    elif energy > limits.resting_energy:
        energy = max(limits.resting_energy, energy - limits.cooldown_per_sec * dt)
    else:
        energy = min(limits.resting_energy, energy + limits.base_heating * dt)
    energy = float(np.clip(energy, 0.0, limits.max_energy))

    failure_reason = rt.failure_reason
    if stress > 0:
        failure_reason = "overpower" if over_p >= over_i else "overcurrent"

    pending = rt.pending_explosion_at
    if energy >= limits.explosion_threshold and pending is None:
        pending = now_ms + explosion_delay_ms(rt.seed, limits)

    brightness = float(np.clip(i_fwd / limits.max_current, 0.0, 1.0))
    if energy > limits.flicker_start and brightness > 0:
        strength = min(0.25, (energy - limits.flicker_start) * 0.4)
        wobble = 1.0 + strength * np.sin(now_ms / 60.0 + rt.flicker_seed)
        brightness = float(np.clip(brightness * wobble, 0.0, 1.0))

    if not forward_on or brightness <= 0:
        visual_state = "off"
    elif stress > 0 or energy > limits.flicker_start:
        visual_state = "hot"
    else:
        visual_state = "on"

    if pending is not None and now_ms >= pending:
        return _explode(rt, energy, now_ms, failure_reason, current, limits)

    return replace(
        rt,
        brightness=brightness,
        thermal_energy=energy,
        exploded=False,
        pending_explosion_at=pending,
        failure_reason=failure_reason,
        visual_state=visual_state,
        last_update_at=now_ms,
    )
