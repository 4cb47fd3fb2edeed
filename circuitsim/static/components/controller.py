from __future__ import annotations
from typing import Iterable, List, Tuple
import logging
import re

from ...snapshot import Computed
from ...topology import Topology
from .base import StaticElement, StampData, stamp_inert_aux, stamp_voltage_source

logger = logging.getLogger(__name__)


def driven_pins(controller: dict | None) -> List[str]:
    """Pin names the attached simulator currently drives digital high."""
    pins = (controller or {}).get("pins") or {}
    return sorted(name for name, state in pins.items() if (state or {}).get("digital") == 1)


class Controller(StaticElement):
    """
    Microcontroller board as seen by the solver.

    All supply-rail pins (labels in `pins.high_labels`) are tied together, as
    are all GND pins. When both rails are wired the board is a 3.3 V source
    between them; every GPIO the simulator drives high is an extra 3.3 V source
    from that pin to GND.
    """

    def __init__(self, element, config) -> None:
        super().__init__(element, config)
        pins_cfg = config.pins
        self.rail_ids = [n.id for n in element.nodes if n.placeholder in pins_cfg.high_labels]
        self.gnd_ids = [n.id for n in element.nodes_with(pins_cfg.low_prefix)]
        pattern = re.compile(pins_cfg.pin_pattern)
        by_label = {n.placeholder: n.id for n in element.nodes if n.placeholder and pattern.match(n.placeholder)}
        self.driven = [(name, by_label[name]) for name in driven_pins(element.controller) if name in by_label]
        self.voltage = float(element.prop("voltage", pins_cfg.high_voltage))
        self.resistance = float(element.prop("resistance", 0.0))

    def internal_shorts(self) -> Iterable[Tuple[str, str]]:
        for ids in (self.rail_ids, self.gnd_ids):
            for a, b in zip(ids, ids[1:]):
                yield a, b

    def coupled_nodes(self) -> Tuple[str, ...]:
        return tuple(self.rail_ids + self.gnd_ids + [node_id for _, node_id in self.driven])

    def rails_wired(self, topology: Topology) -> bool:
        return (any(n in topology.wired for n in self.rail_ids)
                and any(n in topology.wired for n in self.gnd_ids))

    def is_shorted(self, topology: Topology) -> bool:
        return any(topology.connected(p, g) for p in self.rail_ids for g in self.gnd_ids)

    def _pin_live(self, node_id: str, topology: Topology) -> bool:
        return (node_id in topology.wired and bool(self.gnd_ids)
                and not topology.connected(node_id, self.gnd_ids[0]))

    def is_source(self, topology: Topology) -> bool:
        rails = self.rails_wired(topology) and not self.is_shorted(topology)
        return rails or any(self._pin_live(node_id, topology) for _, node_id in self.driven)

    def reference_node(self) -> str | None:
        return self.gnd_ids[0] if self.gnd_ids else None

    def num_aux_vars(self) -> int:
        return 1 + len(self.driven)

    def ideal_branches(self, topology: Topology) -> Iterable[Tuple[int, str, str]]:
        if self.resistance > 0:
            return
        gnd = self.reference_node()
        if self.rails_wired(topology) and not self.is_shorted(topology):
            yield 0, self.rail_ids[0], gnd
        for k, (_, node_id) in enumerate(self.driven, start=1):
            if self._pin_live(node_id, topology):
                yield k, node_id, gnd

    def stamp(self, data: StampData) -> None:
        aux = data.aux(self.name)
        topo = data.topology
        gnd = self.reference_node()
        if self.rails_wired(topo) and not self.is_shorted(topo):
            r = self.branch_resistance(data, 0, self.resistance)
            stamp_voltage_source(data, aux[0], self.rail_ids[0], gnd, self.voltage, r)
        else:
            stamp_inert_aux(data, aux[0])
        for branch, (k, (_, node_id)) in enumerate(zip(aux[1:], self.driven), start=1):
            if self._pin_live(node_id, topo):
                r = self.branch_resistance(data, branch, self.resistance)
                stamp_voltage_source(data, k, node_id, gnd, self.voltage, r)
            else:
                stamp_inert_aux(data, k)

    def idle_results(self, topology: Topology) -> Computed:
        return self._short_results() if self.is_shorted(topology) else Computed()

    def _short_results(self) -> Computed:
        i = self.config.solver.short_circuit_current
        return Computed(current=i, voltage=0.0, power=self.voltage * i, shorted=True)

    def results(self, solution) -> Computed:
        topo = solution.topology
        if self.is_shorted(topo):
            logger.info("Controller %s has its supply rails shorted", self.name)
            return self._short_results()
        currents = [-float(i) for i in solution.aux_values.get(self.name, ())]
        if any(self.loop_overloaded(solution, i, k) for k, i in enumerate(currents)):
            logger.info("Controller %s is shorted by an ideal source or meter", self.name)
            return self._short_results()
        v = 0.0
        if self.rail_ids and self.gnd_ids:
            v = solution.node_voltage(self.rail_ids[0]) - solution.node_voltage(self.gnd_ids[0])
        i = float(sum(currents))
        return Computed(current=i, voltage=v, power=self.voltage * i)
