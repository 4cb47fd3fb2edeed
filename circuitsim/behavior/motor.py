from __future__ import annotations
from dataclasses import replace
import numpy as np

from ..config import MotorParameters
from ..snapshot import MotorRuntime


def omega_to_rpm(omega: float) -> float:
    return omega * 60.0 / (2.0 * np.pi)


def update_motor_runtime(prev: MotorRuntime | None, current: float, dt: float, now_ms: float,
                         params: MotorParameters = MotorParameters()) -> MotorRuntime:
    """
    Integrate the rotor speed over one tick (explicit Euler).

        J * domega/dt = k_t * i - b * omega

    The speed is clamped to +/- `max_speed`.

    Args:
        prev: Previous runtime (None starts at rest).
        current: Winding current solved this tick [A].
        dt: Seconds since the previous tick.
        now_ms: Monotonic timestamp [ms].
        params: Motor constants.

    Returns:
        Next MotorRuntime with angular speed [rad/s] and RPM.
    """
    if dt < 0:
        raise ValueError("dt must be non-negative.")
    rt = prev if prev is not None else MotorRuntime()
    omega = rt.angular_speed
    omega += (current * params.k_t - params.damping * omega) / params.inertia * dt
    omega = float(np.clip(omega, -params.max_speed, params.max_speed))
    return replace(rt, angular_speed=omega, rpm=omega_to_rpm(omega), last_update_at=now_ms)
