from __future__ import annotations

from ...snapshot import Computed
from .base import StaticElement, StampData, stamp_current_source, stamp_resistance


class DcMotor(StaticElement):
    """
    Brushed DC motor seen by the static solver: winding resistance in series
    with a back-EMF k_e * omega, where omega comes from the previous tick.

    Stamped as a Norton equivalent, i(1->2) = (V1 - V2 - E) / R.
    """

    def __init__(self, element, config) -> None:
        super().__init__(element, config)
        self.params = config.motor
        rt = element.runtime.get("motor")
        self.omega = float(rt.angular_speed) if rt is not None else 0.0

    def winding_resistance(self) -> float:
        r = float(self.element.prop("resistance", self.params.resistance))
        return max(r, self.config.solver.min_resistance)

    def back_emf(self) -> float:
        return self.params.k_e * self.omega

    def stamp(self, data: StampData) -> None:
        n1, n2 = self.element.node_id(0), self.element.node_id(1)
        r = self.winding_resistance()
        stamp_resistance(data, n1, n2, r)
        e = self.back_emf()
        if e:
            stamp_current_source(data, n2, n1, e / r)

    def results(self, solution) -> Computed:
        v = self.branch_voltage(solution)
        i = (v - self.back_emf()) / self.winding_resistance()
        return Computed(current=i, voltage=v, power=v * i)
