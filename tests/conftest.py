"""
Shared test helpers for the circuitsim test suite.

Snapshots are built as plain editor-style mappings so the tests exercise the
same parsing path the editor uses.
"""

import logging

import pytest

from circuitsim.bridge import InlineDispatcher
from circuitsim.engine import Simulation


def make_node(element_id, suffix, label=None):
    """Helper to create an editor node mapping."""
    node = {"id": f"{element_id}-{suffix}", "parentId": element_id}
    if label is not None:
        node["placeholder"] = label
    return node


def make_element(element_id, element_type, nodes, **properties):
    """Helper to create an element mapping with minimal boilerplate."""
    return {
        "id": element_id,
        "type": element_type,
        "nodes": nodes,
        "properties": properties,
    }


def make_wire(from_node, to_node, wire_id=None, **flags):
    """Helper to create a wire mapping between two node ids."""
    return {
        "id": wire_id or f"w:{from_node}:{to_node}",
        "fromNodeId": from_node,
        "toNodeId": to_node,
        **flags,
    }


def battery(element_id="bat", element_type="battery", **properties):
    """Two-terminal source; node ids are '<id>-neg' and '<id>-pos'."""
    return make_element(
        element_id,
        element_type,
        [make_node(element_id, "neg", "Negative"), make_node(element_id, "pos", "Positive")],
        **properties,
    )


def two_terminal(element_id, element_type, **properties):
    """Two-terminal part; node ids are '<id>-a' and '<id>-b'."""
    return make_element(
        element_id,
        element_type,
        [make_node(element_id, "a"), make_node(element_id, "b")],
        **properties,
    )


def led(element_id="led", color="red", runtime=None):
    """LED with node ids '<id>-cathode' and '<id>-anode'."""
    el = make_element(
        element_id,
        "led",
        [make_node(element_id, "cathode", "Cathode"), make_node(element_id, "anode", "Anode")],
        color=color,
    )
    if runtime is not None:
        el["runtime"] = runtime
    return el


def meter(element_id, mode):
    """Multimeter with probe ids '<id>-pos' and '<id>-neg'."""
    return make_element(
        element_id,
        "multimeter",
        [make_node(element_id, "pos", "Positive"), make_node(element_id, "neg", "Negative")],
        mode=mode,
    )


def microbit(element_id="mb", pins=("P0", "P1", "P2"), driven=None):
    """Controller with pins, a '3V' and a '3.3V' rail pin and two GND pins."""
    nodes = [make_node(element_id, p, p) for p in pins]
    nodes += [
        make_node(element_id, "3v", "3V"),
        make_node(element_id, "3v3", "3.3V"),
        make_node(element_id, "gnd", "GND"),
        make_node(element_id, "gnd2", "GND2"),
    ]
    el = make_element(element_id, "microbit", nodes)
    if driven:
        el["controller"] = {"pins": {p: {"digital": 1} for p in driven}}
    return el


def by_id(elements):
    return {el.id: el for el in elements}


def series_loop(*pairs):
    """Wires closing a loop through the given (from, to) node-id pairs."""
    return [make_wire(a, b) for a, b in pairs]


class RecordingSimulator:
    """Controller simulator double that records every pin write."""

    def __init__(self):
        self.calls = []
        self.stopped = False

    def set_external_pin_value(self, pin, value, kind):
        self.calls.append((pin, value, kind))

    def stop(self):
        self.stopped = True


class BrokenSimulator:
    """Controller simulator double whose every call fails."""

    def set_external_pin_value(self, pin, value, kind):
        raise RuntimeError("simulator torn down")

    def stop(self):
        raise RuntimeError("already gone")


@pytest.fixture
def sim():
    """Simulation with synchronous pin delivery."""
    simulation = Simulation(dispatcher=InlineDispatcher())
    yield simulation
    simulation.close()


@pytest.fixture
def battery_resistor():
    """
    9 V battery (1.45 Ohm) -- R1 (1 kOhm) -- back to battery.
    """
    elements = [battery("bat"), two_terminal("r1", "resistor", resistance=1000.0)]
    wires = series_loop(("bat-pos", "r1-a"), ("r1-b", "bat-neg"))
    return elements, wires


@pytest.fixture
def debug_logs(caplog):
    caplog.set_level(logging.DEBUG, logger="circuitsim")
    return caplog
