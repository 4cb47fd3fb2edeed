"""
Time-evolving component behaviour driven by the electrical solution.
"""

from .led import (  # noqa: F401
    LedElectrical,
    element_seed,
    explosion_delay_ms,
    forward_voltage,
    initial_led_runtime,
    led_parameters,
    series_resistance,
    update_led_runtime,
)
from .motor import omega_to_rpm, update_motor_runtime  # noqa: F401
from .shaping import ldr_resistance, potentiometer_halves  # noqa: F401
