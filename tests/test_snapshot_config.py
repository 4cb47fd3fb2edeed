"""
Tests for circuitsim.snapshot and circuitsim.config.
"""

import json
import math

import pytest

from circuitsim.config import RGB_LED_LIMITS, SimulationConfig
from circuitsim.engine import solve
from circuitsim.snapshot import (
    OVERLOAD,
    Computed,
    Element,
    LedRuntime,
    SnapshotError,
    Wire,
    coerce_elements,
    led_runtime,
)
from tests.conftest import battery, by_id, led, make_node, meter, series_loop, two_terminal


class TestElement:
    def test_parses_camel_case_nodes(self):
        el = Element.from_dict(battery("bat"))
        assert el.nodes[0].parent_id == "bat"
        assert el.nodes[1].placeholder == "Positive"
        assert el.node("Negative").id == "bat-neg"

    def test_unknown_keys_round_trip(self):
        data = {**battery("bat"), "position": {"x": 4, "y": 2}}
        out = Element.from_dict(data).to_dict()
        assert out["position"] == {"x": 4, "y": 2}
        assert out["nodes"][0] == {"id": "bat-neg", "parentId": "bat", "placeholder": "Negative"}

    def test_runtime_is_parsed(self):
        el = Element.from_dict(led("led", runtime={"led": {"exploded": True, "thermalEnergy": 0.7}}))
        rt = led_runtime(el)
        assert isinstance(rt, LedRuntime)
        assert rt.exploded and rt.thermal_energy == 0.7
        assert el.to_dict()["runtime"]["led"]["thermalEnergy"] == 0.7

    def test_missing_id_or_type(self):
        with pytest.raises(SnapshotError):
            Element.from_dict({"type": "resistor"})
        with pytest.raises(SnapshotError):
            Element.from_dict({"id": "r1"})

    def test_node_without_id(self):
        with pytest.raises(SnapshotError):
            Element.from_dict({"id": "r1", "type": "resistor", "nodes": [{"parentId": "r1"}]})

    def test_duplicate_ids_rejected(self):
        with pytest.raises(SnapshotError):
            coerce_elements([battery("x"), battery("x")])

    def test_nodes_with_prefix(self):
        el = Element.from_dict({"id": "mb", "type": "microbit",
                                "nodes": [make_node("mb", "g1", "GND"), make_node("mb", "g2", "gnd2"),
                                          make_node("mb", "p", "P0")]})
        assert [n.id for n in el.nodes_with("GND")] == ["mb-g1", "mb-g2"]


class TestWire:
    def test_defaults(self):
        wire = Wire.from_dict({"id": "w1", "fromNodeId": "a", "toNodeId": "b"})
        assert not wire.deleted and not wire.hidden

    def test_extra_kept(self):
        data = {"id": "w1", "fromNodeId": "a", "toNodeId": "b", "joints": [[1, 2]], "hidden": True}
        assert Wire.from_dict(data).to_dict() == {**data, "deleted": False}


class TestComputed:
    def test_to_dict_drops_unset_fields(self):
        out = Computed(current=0.1, supply_mode="CC").to_dict()
        assert out["supplyMode"] == "CC"
        assert "forwardVoltage" not in out
        assert "explosionCurrentEstimate" not in out

    def test_open_ohmmeter_writes_overload(self):
        om = by_id(solve([meter("om", "resistance")], []))["om"]
        out = om.to_dict()["computed"]
        assert out["measurement"] == OVERLOAD
        assert math.isinf(om.computed.measurement)
        json.dumps(out, allow_nan=False)

    def test_powered_ohmmeter_writes_null(self):
        elements = [battery("bat"), two_terminal("r", "resistor", resistance=100.0), meter("om", "resistance")]
        wires = series_loop(("bat-pos", "r-a"), ("r-b", "bat-neg"), ("om-pos", "r-a"), ("om-neg", "r-b"))
        out = by_id(solve(elements, wires))["om"].to_dict()["computed"]
        assert out["measurement"] is None
        json.dumps(out, allow_nan=False)

    def test_sentinels_read_back(self):
        assert math.isinf(Computed.from_dict({"measurement": OVERLOAD}).measurement)
        assert Computed.from_dict({"measurement": "-" + OVERLOAD}).measurement == -math.inf
        assert math.isnan(Computed.from_dict({"measurement": None}).measurement)
        assert Computed.from_dict({"measurement": 470.0}).measurement == 470.0

    def test_element_computed_round_trips_through_json(self):
        om = by_id(solve([meter("om", "resistance")], []))["om"]
        again = Element.from_dict(json.loads(json.dumps(om.to_dict(), allow_nan=False)))
        assert again.computed == om.computed


class TestSimulationConfig:
    def test_nested_sections(self):
        config = SimulationConfig.from_dict({"solver": {"max_led_iterations": 3}, "seed": 7})
        assert config.solver.max_led_iterations == 3
        assert config.solver.gmin == 1e-12
        assert config.seed == 7

    def test_rgb_section_keeps_its_own_defaults(self):
        config = SimulationConfig.from_dict({"rgb_led": {"max_current": 0.03}})
        assert config.rgb_led.max_current == 0.03
        assert config.rgb_led.max_reverse_voltage == RGB_LED_LIMITS.max_reverse_voltage

    def test_lists_become_tuples(self):
        config = SimulationConfig.from_dict({"pins": {"high_labels": ["3V", "VCC"]}})
        assert config.pins.high_labels == ("3V", "VCC")
        hash(config)

    def test_unknown_key(self):
        with pytest.raises(TypeError):
            SimulationConfig.from_dict({"solver": {"tolerance": 1e-6}})
