from __future__ import annotations
from typing import Any, Dict, Iterable, Protocol
import logging
import re

from ..config import PinBridgeConfig
from ..snapshot import CONTROLLER_TYPES, Element
from ..topology import Topology
from .dispatch import InlineDispatcher, ThreadDispatcher

logger = logging.getLogger(__name__)


class ControllerSimulator(Protocol):
    """Interface of an embedded-code simulator attached to a controller element."""

    def set_external_pin_value(self, pin: str, value: int, kind: str) -> Any:
        """Drive an input pin from the circuit side."""
        ...


def anchor_voltage(topology: Topology, node_id: str, config: PinBridgeConfig = PinBridgeConfig()) -> float:
    """
    Voltage seen by a pin, read from the role labels of its equivalence class.

    A supply-rail label wins over GND; a class with neither floats and reads 0 V.
    """
    labels = topology.labels_of(node_id)
    if any(label in config.high_labels for label in labels):
        return config.high_voltage
    return 0.0


def pin_level(topology: Topology, node_id: str, config: PinBridgeConfig = PinBridgeConfig()) -> int:
    return 1 if anchor_voltage(topology, node_id, config) >= config.threshold else 0


def controller_pin_levels(element: Element, topology: Topology,
                          config: PinBridgeConfig = PinBridgeConfig()) -> Dict[str, int]:
    """Digital level of every pin-labelled node of one controller element."""
    pattern = re.compile(config.pin_pattern)
    return {
        n.placeholder: pin_level(topology, n.id, config)
        for n in element.nodes
        if n.placeholder and pattern.match(n.placeholder)
    }


class PinBridge:
    """
    Maps solved topology onto controller input pins and forwards the levels.

    Levels are pushed every tick for every pin of every controller that has a
    simulator attached; delivery goes through the dispatcher and never blocks.
    """

    def __init__(self, config: PinBridgeConfig | None = None,
                 dispatcher: ThreadDispatcher | InlineDispatcher | None = None) -> None:
        self.config = config or PinBridgeConfig()
        self.dispatcher = dispatcher if dispatcher is not None else ThreadDispatcher()
        self._simulators: Dict[str, ControllerSimulator] = {}
        self.last_levels: Dict[str, Dict[str, int]] = {}

    def attach(self, element_id: str, simulator: ControllerSimulator) -> None:
        self._simulators[element_id] = simulator

    def detach(self, element_id: str) -> ControllerSimulator | None:
        self.last_levels.pop(element_id, None)
        return self._simulators.pop(element_id, None)

    def update(self, elements: Iterable[Element], topology: Topology) -> Dict[str, Dict[str, int]]:
        """
        Compute pin levels for all controllers and send them to attached simulators.

        Returns:
            Mapping controller id -> {pin name: 0/1}.
        """
        levels: Dict[str, Dict[str, int]] = {}
        for el in elements:
            if el.type not in CONTROLLER_TYPES:
                continue
            levels[el.id] = controller_pin_levels(el, topology, self.config)
            sim = self._simulators.get(el.id)
            if sim is None:
                continue
            for pin, value in levels[el.id].items():
                self.dispatcher.submit((el.id, pin), sim.set_external_pin_value, pin, value, "digital")
        self.last_levels = levels
        return levels

    def stop(self) -> None:
        """Tell every attached simulator to stop; failures are logged and ignored."""
        for element_id, sim in list(self._simulators.items()):
            stop = getattr(sim, "stop", None)
            if stop is None:
                continue
            try:
                stop()
            except Exception as exc:
                logger.debug("Stopping simulator of %s failed: %s", element_id, exc)
        self.last_levels = {}

    def close(self) -> None:
        self.dispatcher.close()
