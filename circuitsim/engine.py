"""
Per-tick simulation driver.

One `step` runs the whole pipeline on a snapshot:

    topology -> electrical solve -> behaviour models (dt) -> pin bridge

and returns a fresh element list; the input snapshot is never mutated.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping
import logging

from .behavior.led import (
    LedElectrical,
    RGB_FORWARD_VOLTAGE,
    element_seed,
    initial_led_runtime,
    led_parameters,
    update_led_runtime,
)
from .behavior.motor import update_motor_runtime
from .bridge import ControllerSimulator, InlineDispatcher, PinBridge, ThreadDispatcher
from .config import SimulationConfig
from .snapshot import (
    CONTROLLER_TYPES,
    RGB_CHANNELS,
    ChannelResult,
    Computed,
    Element,
    Wire,
    coerce_elements,
    led_runtime,
)
from .static import SolveReport, solve_snapshot

logger = logging.getLogger(__name__)

RUNTIME_KEYS = ("led", "rgbled", "motor")
CONTROLLER_MIRRORS = ("pins", "leds")


def solve(elements: Iterable[Element | Mapping], wires: Iterable[Wire | Mapping],
          config: SimulationConfig | None = None) -> List[Element]:
    """Pure electrical tick: new elements with Computed bags, runtime untouched."""
    return solve_snapshot(elements, wires, config).elements


def advance_element(element: Element, dt: float, now_ms: float, config: SimulationConfig) -> Element:
    """
    Run the behaviour model of one element on its freshly solved Computed bag.
    Elements without time-evolving state are returned unchanged.
    """
    computed = element.computed or Computed()
    if element.type == "led":
        prev = led_runtime(element) or initial_led_runtime(element_seed(element.id, config.seed))
        vf, _ = led_parameters(element.properties)
        current = computed.current
        if prev.exploded and computed.explosion_current_estimate is not None:
            current = computed.explosion_current_estimate
        electrical = LedElectrical(
            forward_voltage=computed.forward_voltage if computed.forward_voltage is not None else computed.voltage,
            current=current,
            power=computed.power,
        )
        return element.with_runtime(led=update_led_runtime(prev, electrical, dt, now_ms, vf, config.led))

    if element.type == "rgbled":
        channels = computed.channels or {}
        states = {}
        for ch in RGB_CHANNELS:
            prev = led_runtime(element, ch) or initial_led_runtime(element_seed(element.id, config.seed, ch))
            result = channels.get(ch, ChannelResult())
            electrical = LedElectrical(result.forward_voltage, result.current, result.power)
            states[ch] = update_led_runtime(prev, electrical, dt, now_ms, RGB_FORWARD_VOLTAGE[ch], config.rgb_led)
        return element.with_runtime(rgbled=states)

    if element.type == "dcmotor":
        prev = element.runtime.get("motor")
        return element.with_runtime(motor=update_motor_runtime(prev, computed.current, dt, now_ms, config.motor))

    return element


def reset_element(element: Element) -> Element:
    """Clear Computed, behaviour runtime and controller mirrors of one element."""
    runtime = {k: v for k, v in element.runtime.items() if k not in RUNTIME_KEYS}
    controller = element.controller
    if controller is not None and element.type in CONTROLLER_TYPES:
        controller = {k: v for k, v in controller.items() if k not in CONTROLLER_MIRRORS}
    return replace(element, computed=None, runtime=runtime, controller=controller)


class Simulation:
    """
    Stateful tick driver for one circuit.

    Holds the configuration, the pin bridge with its attached controller
    simulators and the diagnostics of the last tick. Element state lives in
    the snapshots passed in and returned, not here.

    Example:
        sim = Simulation()
        for k in range(100):
            elements = sim.step(elements, wires, dt=0.02, now_ms=20.0 * k)
        elements = sim.stop(elements)
        sim.close()
    """

    def __init__(self, config: SimulationConfig | None = None,
                 dispatcher: ThreadDispatcher | InlineDispatcher | None = None) -> None:
        self.config = config or SimulationConfig()
        self.bridge = PinBridge(self.config.pins, dispatcher)
        self.last_report: SolveReport | None = None

    @property
    def last_pin_levels(self) -> Dict[str, Dict[str, int]]:
        return self.bridge.last_levels

    def attach_controller(self, element_id: str, simulator: ControllerSimulator) -> None:
        self.bridge.attach(element_id, simulator)

    def detach_controller(self, element_id: str) -> ControllerSimulator | None:
        return self.bridge.detach(element_id)

    def step(self, elements: Iterable[Element | Mapping], wires: Iterable[Wire | Mapping],
             dt: float, now_ms: float) -> List[Element]:
        """
        Advance the circuit by one tick.

        Args:
            elements: Element snapshot.
            wires: Wire snapshot.
            dt: Seconds since the previous tick (>= 0).
            now_ms: Monotonic timestamp of this tick [ms].

        Returns:
            New element list with Computed bags and advanced runtime.

        Raises:
            ValueError: If dt is negative.
        """
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}.")
        result = solve_snapshot(elements, wires, self.config)
        self.last_report = result.report
        advanced = [advance_element(el, dt, now_ms, self.config) for el in result.elements]
        self.bridge.update(advanced, result.topology)
        return advanced

    def stop(self, elements: Iterable[Element | Mapping]) -> List[Element]:
        """
        End the run: reset every element and stop attached simulators, so a
        restarted simulation starts cold rather than mid-failure.
        """
        self.bridge.stop()
        self.last_report = None
        return [reset_element(el) for el in coerce_elements(elements)]

    def close(self) -> None:
        self.bridge.close()

    def __enter__(self) -> "Simulation":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
