from __future__ import annotations
from typing import Iterable, Tuple
import logging

from ...snapshot import Computed, Element
from ...topology import Topology
from .base import (
    StaticElement,
    StampData,
    stamp_current_source,
    stamp_inert_aux,
    stamp_voltage_source,
)

logger = logging.getLogger(__name__)

# type -> (EMF per cell [V], internal resistance per cell [Ohm])
CELL_DEFAULTS = {
    "battery": (9.0, 1.45),
    "cell3v": (3.0, 0.8),
    "AA_battery": (1.5, 0.3),
    "AAA_battery": (1.5, 0.4),
}


def source_terminals(element: Element) -> Tuple[str | None, str | None]:
    """
    Return (positive, negative) node ids of a two-terminal source.

    Polarity hints win, then "Positive"/"Negative" (or "+"/"-") labels; the
    fallback is nodes[1] positive, nodes[0] negative.
    """
    pos = neg = None
    for n in element.nodes:
        label = (n.placeholder or "").lower()
        if n.polarity == "positive" or label in ("positive", "+"):
            pos = pos or n.id
        elif n.polarity == "negative" or label in ("negative", "-"):
            neg = neg or n.id
    return pos or element.node_id(1), neg or element.node_id(0)


class Battery(StaticElement):
    """
    Fixed-EMF source with internal resistance.

    AA/AAA packs honour `count` cells in series; `voltage` and `resistance`
    override the catalogue values.
    """

    def __init__(self, element, config) -> None:
        super().__init__(element, config)
        self.pos, self.neg = source_terminals(element)

    def emf(self) -> float:
        v, _ = CELL_DEFAULTS.get(self.element.type, CELL_DEFAULTS["battery"])
        return float(self.element.prop("voltage", v * self._cells()))

    def internal_resistance(self) -> float:
        _, r = CELL_DEFAULTS.get(self.element.type, CELL_DEFAULTS["battery"])
        return float(self.element.prop("resistance", r * self._cells()))

    def _cells(self) -> int:
        if self.element.type in ("AA_battery", "AAA_battery"):
            return max(1, int(self.element.prop("count", 1)))
        return 1

    def coupled_nodes(self) -> Tuple[str, ...]:
        return tuple(n for n in (self.pos, self.neg) if n is not None)

    def is_source(self, topology: Topology) -> bool:
        return True

    def reference_node(self) -> str | None:
        return self.neg

    def is_shorted(self, topology: Topology) -> bool:
        return topology.connected(self.pos, self.neg)

    def num_aux_vars(self) -> int:
        return 1

    def ideal_branches(self, topology: Topology) -> Iterable[Tuple[int, str, str]]:
        if self.internal_resistance() <= 0 and not self.is_shorted(topology):
            yield 0, self.pos, self.neg

    def stamp(self, data: StampData) -> None:
        k = data.aux(self.name)[0]
        if self.is_shorted(data.topology):
            stamp_inert_aux(data, k)
            return
        r = self.branch_resistance(data, 0, self.internal_resistance())
        stamp_voltage_source(data, k, self.pos, self.neg, self.emf(), r)

    def delivered_current(self, solution) -> float:
        return -solution.aux_scalar(self.name)

    def short_circuit_current(self) -> float:
        ceiling = self.config.solver.short_circuit_current
        r = self.internal_resistance()
        if r <= 0:
            return ceiling
        return min(abs(self.emf()) / r, ceiling)

    def _short_results(self) -> Computed:
        i = self.short_circuit_current()
        return Computed(current=i, voltage=0.0, power=abs(self.emf()) * i, shorted=True)

    def results(self, solution) -> Computed:
        if self.is_shorted(solution.topology):
            logger.info("Source %s is short-circuited", self.name)
            return self._short_results()
        i = self.delivered_current(solution)
        if self.loop_overloaded(solution, i):
            logger.info("Source %s is shorted by another ideal source or meter", self.name)
            return self._short_results()
        v = solution.node_voltage(self.pos) - solution.node_voltage(self.neg)
        return Computed(current=i, voltage=v, power=v * i)


class BenchSupply(Battery):
    """
    Adjustable bench supply with on/off switch and current limit.

    Regulates `vSet` (mode "VC") until the delivered current would exceed
    `iLimit`; the solver then re-stamps it as an ideal current source at the
    limit (mode "CC"). Switched off it stamps nothing (mode "OFF").
    """

    def emf(self) -> float:
        return float(self.element.prop("vSet", self.element.prop("voltage", 5.0)))

    def internal_resistance(self) -> float:
        return float(self.element.prop("resistance", 0.2))

    def current_limit(self) -> float:
        return float(self.element.prop("iLimit", 1.0))

    def is_on(self) -> bool:
        return self.element.prop("isOn", True) is not False

    def is_source(self, topology: Topology) -> bool:
        return self.is_on()

    def ideal_branches(self, topology: Topology) -> Iterable[Tuple[int, str, str]]:
        if self.is_on():
            yield from super().ideal_branches(topology)

    def idle_results(self, topology: Topology) -> Computed:
        return Computed() if self.is_on() else Computed(supply_mode="OFF")

    def exceeds_limit(self, solution) -> bool:
        if not self.is_on() or self.is_shorted(solution.topology):
            return False
        tol = self.config.solver.supply_limit_tol
        return abs(self.delivered_current(solution)) > self.current_limit() + tol

    def short_circuit_current(self) -> float:
        return min(self.current_limit(), self.config.solver.short_circuit_current)

    def stamp(self, data: StampData) -> None:
        k = data.aux(self.name)[0]
        if not self.is_on():
            stamp_inert_aux(data, k)
        elif self.name in data.current_limited and not self.is_shorted(data.topology):
            stamp_inert_aux(data, k)
            stamp_current_source(data, self.neg, self.pos, self.current_limit())
        else:
            super().stamp(data)

    def results(self, solution) -> Computed:
        if not self.is_on():
            return Computed(supply_mode="OFF")
        if self.is_shorted(solution.topology) or self.loop_overloaded(solution, self.delivered_current(solution)):
            i = self.short_circuit_current()
            return Computed(current=i, voltage=0.0, power=abs(self.emf()) * i, shorted=True, supply_mode="CC")
        v = solution.node_voltage(self.pos) - solution.node_voltage(self.neg)
        if self.name in solution.current_limited:
            i = self.current_limit()
            return Computed(current=i, voltage=v, power=v * i, supply_mode="CC")
        i = self.delivered_current(solution)
        return Computed(current=i, voltage=v, power=v * i, supply_mode="VC")
