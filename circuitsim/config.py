from __future__ import annotations
from dataclasses import dataclass, field, fields, is_dataclass, replace
from typing import Any, Mapping, Tuple


@dataclass(frozen=True)
class SolverConfig:
    """
    Parameters of the per-tick nodal solver.

    Attributes:
        max_led_iterations: Cap on the LED conduction-state iterations per sub-circuit.
        gmin: Shunt conductance from every node to the sub-circuit reference [S].
            Keeps nodes that hang off open LEDs or probes defined.
        short_circuit_current: Current reported by a source whose terminals collapse
            into one equivalence class [A].
        ohmmeter_test_voltage: Test voltage applied by a multimeter in resistance mode [V].
        min_resistance: Floor applied to every resistive stamp [Ohm].
        supply_limit_tol: Margin above iLimit before a bench supply switches to CC [A].
    """
    max_led_iterations: int = 8
    gmin: float = 1e-12
    short_circuit_current: float = 10.0
    ohmmeter_test_voltage: float = 1.0
    min_resistance: float = 1e-3
    supply_limit_tol: float = 1e-9


@dataclass(frozen=True)
class LedLimits:
    """
    Ratings and thermal constants of the LED failure model.

    Energies are dimensionless: 0 is cold, `explosion_threshold` arms the
    explosion timer, `max_energy` is the saturation value.
    """
    max_current: float = 0.02              # A
    max_power: float = 0.08                # W
    max_reverse_voltage: float = 50.0      # V
    hard_overstress_factor: float = 1.2
    low_voltage_guard: float = 2.2         # V
    explosion_threshold: float = 0.6
    thermal_gain: float = 2.0
    base_heating: float = 0.05             # per second while conducting
    cooldown_per_sec: float = 0.35
    resting_energy: float = 0.3            # ceiling of unstressed self-heating
    flicker_start: float = 0.5
    max_energy: float = 2.0
    explosion_delay_ms: Tuple[float, float] = (200.0, 300.0)


LED_LIMITS = LedLimits()

RGB_LED_LIMITS = LedLimits(
    max_power=0.065,
    max_reverse_voltage=5.0,
    thermal_gain=1.5,
    cooldown_per_sec=0.4,
)


@dataclass(frozen=True)
class MotorParameters:
    """
    Lumped DC motor constants.

    Attributes:
        resistance: Winding resistance [Ohm].
        k_e: Back-EMF constant [V·s/rad].
        k_t: Torque constant [N·m/A].
        inertia: Rotor inertia [kg·m²].
        damping: Viscous friction [N·m·s/rad].
        max_speed: Clamp on |omega| [rad/s].
    """
    resistance: float = 10.0
    k_e: float = 0.02
    k_t: float = 0.02
    inertia: float = 0.01
    damping: float = 0.001
    max_speed: float = 500.0


@dataclass(frozen=True)
class PinBridgeConfig:
    high_voltage: float = 3.3
    threshold: float = 1.65
    high_labels: Tuple[str, ...] = ("3V", "3.3V")
    low_prefix: str = "GND"
    pin_pattern: str = r"^P\d+$"


@dataclass(frozen=True)
class SimulationConfig:
    """Aggregate configuration handed to `Simulation` and `solve`."""
    solver: SolverConfig = field(default_factory=SolverConfig)
    led: LedLimits = field(default_factory=LedLimits)
    rgb_led: LedLimits = RGB_LED_LIMITS
    motor: MotorParameters = field(default_factory=MotorParameters)
    pins: PinBridgeConfig = field(default_factory=PinBridgeConfig)
    seed: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimulationConfig":
        """
        Build a configuration from plain (e.g. JSON-decoded) mappings.

        Nested sections are turned into their dataclasses; sequences become
        tuples so the result stays hashable. Unknown keys raise TypeError.
        """
        return _build(cls(), data)


def _build(base, data: Mapping[str, Any]):
    # Overlay `data` on `base`, so nested sections keep their own defaults (rgb_led).
    kwargs: dict[str, Any] = {}
    names = {f.name for f in fields(base)}
    for key, value in data.items():
        if key not in names:
            raise TypeError(f"{type(base).__name__} got an unexpected key '{key}'.")
        default = getattr(base, key)
        if is_dataclass(default) and isinstance(value, Mapping):
            value = _build(default, value)
        elif isinstance(value, list):
            value = tuple(value)
        kwargs[key] = value
    return replace(base, **kwargs)
