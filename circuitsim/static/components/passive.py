from __future__ import annotations

from ...behavior.shaping import ldr_resistance, potentiometer_halves
from ...snapshot import Computed
from .base import StaticElement, StampData, stamp_resistance


class Resistor(StaticElement):
    """Linear two-terminal resistor between nodes[0] and nodes[1]."""
    default_resistance = 1.0

    def resistance(self) -> float:
        r = float(self.element.prop("resistance", self.default_resistance))
        return max(r, self.config.solver.min_resistance)

    def stamp(self, data: StampData) -> None:
        stamp_resistance(data, self.element.node_id(0), self.element.node_id(1), self.resistance())

    def results(self, solution) -> Computed:
        v = self.branch_voltage(solution)
        i = v / self.resistance()
        return Computed(current=i, voltage=v, power=v * i)


class Lightbulb(Resistor):
    default_resistance = 48.0


class LightDependentResistor(Resistor):
    """Resistive light sensor; `lightLevel` (0-100) sets the resistance each tick."""

    def resistance(self) -> float:
        return ldr_resistance(float(self.element.prop("lightLevel", 50.0)))


class Potentiometer(StaticElement):
    """
    Three-terminal potentiometer, nodes [terminal 1, wiper, terminal 2].

    The track is split at `ratio` into two resistors:
        R1 = R * (1 - ratio) between terminal 1 and the wiper,
        R2 = R * ratio between the wiper and terminal 2.
    """

    def halves(self) -> tuple[float, float]:
        total = float(self.element.prop("resistance", 1.0))
        ratio = float(self.element.prop("ratio", 0.5))
        return potentiometer_halves(total, ratio, self.config.solver.min_resistance)

    def stamp(self, data: StampData) -> None:
        r1, r2 = self.halves()
        t1, wiper, t2 = (self.element.node_id(i) for i in range(3))
        stamp_resistance(data, t1, wiper, r1)
        stamp_resistance(data, wiper, t2, r2)

    def results(self, solution) -> Computed:
        r1, r2 = self.halves()
        v1 = solution.node_voltage(self.element.node_id(0))
        vw = solution.node_voltage(self.element.node_id(1))
        v2 = solution.node_voltage(self.element.node_id(2))
        i1 = (v1 - vw) / r1
        i2 = (vw - v2) / r2
        return Computed(current=i1, voltage=v1 - v2, power=i1 * i1 * r1 + i2 * i2 * r2)
