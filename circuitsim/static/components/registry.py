from __future__ import annotations
from typing import Dict, Iterable, Tuple, Type

from ...config import SimulationConfig
from ...snapshot import Element
from .base import Passive, StaticElement
from .controller import Controller
from .diodes import Led, RgbLed
from .meters import Multimeter
from .motor import DcMotor
from .passive import LightDependentResistor, Lightbulb, Potentiometer, Resistor
from .sources import BenchSupply, Battery
from .switches import PushButton, SlideSwitch

MODEL_TYPES: Dict[str, Type[StaticElement]] = {
    "battery": Battery,
    "cell3v": Battery,
    "AA_battery": Battery,
    "AAA_battery": Battery,
    "powersupply": BenchSupply,
    "resistor": Resistor,
    "lightbulb": Lightbulb,
    "ldr": LightDependentResistor,
    "potentiometer": Potentiometer,
    "led": Led,
    "rgbled": RgbLed,
    "dcmotor": DcMotor,
    "microbit": Controller,
    "microbitWithBreakout": Controller,
    "multimeter": Multimeter,
    "slideswitch": SlideSwitch,
    "pushbutton": PushButton,
}


def build_model(element: Element, config: SimulationConfig | None = None) -> StaticElement:
    """Return the electrical model for an element; unknown types get no stamp."""
    cls = MODEL_TYPES.get(element.type, Passive)
    return cls(element, config or SimulationConfig())


def internal_shorts(element: Element, config: SimulationConfig | None = None) -> Iterable[Tuple[str, str]]:
    """Node pairs an element shorts internally (closed contacts, tied rails)."""
    return tuple(build_model(element, config).internal_shorts())
