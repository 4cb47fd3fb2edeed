from __future__ import annotations
from typing import Iterable, Tuple
import logging
import math

from ...snapshot import Computed
from .base import StaticElement, StampData, stamp_inert_aux, stamp_voltage_source

logger = logging.getLogger(__name__)

# Test currents below this read as an open circuit (above ~1 GOhm at 1 V).
OPEN_CURRENT = 1e-9


class Multimeter(StaticElement):
    """
    Ideal multimeter between probe nodes[0] (positive) and nodes[1] (negative).

    Modes (`mode` property):
        voltage     no stamp, reads V(probe0) - V(probe1);
        current     0 V branch, reads the current from probe0 to probe1 through the meter;
        resistance  excites an unpowered sub-circuit with a test voltage and reads V/I.
    """

    def __init__(self, element, config) -> None:
        super().__init__(element, config)
        self.mode = str(element.prop("mode", "voltage")).lower()
        self.probe_pos = element.node_id(0)
        self.probe_neg = element.node_id(1)

    def _probes_joined(self, topology) -> bool:
        return topology.connected(self.probe_pos, self.probe_neg)

    def is_test_source(self) -> bool:
        return self.mode == "resistance"

    def num_aux_vars(self) -> int:
        return 1 if self.mode in ("current", "resistance") else 0

    def ideal_branches(self, topology) -> Iterable[Tuple[int, str, str]]:
        if self.mode == "current" and not self._probes_joined(topology):
            yield 0, self.probe_pos, self.probe_neg

    def stamp(self, data: StampData) -> None:
        if self.mode == "current":
            k = data.aux(self.name)[0]
            if self._probes_joined(data.topology):
                stamp_inert_aux(data, k)
            else:
                r = self.branch_resistance(data, 0, 0.0)
                stamp_voltage_source(data, k, self.probe_pos, self.probe_neg, 0.0, r)
        elif self.mode == "resistance":
            k = data.aux(self.name)[0]
            if data.powered or self._probes_joined(data.topology):
                stamp_inert_aux(data, k)
            else:
                v_test = self.config.solver.ohmmeter_test_voltage
                stamp_voltage_source(data, k, self.probe_pos, self.probe_neg, v_test)

    def results(self, solution) -> Computed:
        v = self.branch_voltage(solution)
        if self.mode == "current":
            i = solution.aux_scalar(self.name)
            if self.loop_overloaded(solution, i):
                logger.info("Multimeter %s shorts an ideal source", self.name)
                i = math.copysign(self.config.solver.short_circuit_current, i)
                return Computed(current=i, voltage=0.0, measurement=i, shorted=True)
            return Computed(current=i, voltage=0.0, measurement=i)
        if self.mode == "resistance":
            if solution.powered:
                reading = math.nan
            elif self._probes_joined(solution.topology):
                reading = 0.0
            else:
                i = abs(solution.aux_scalar(self.name))
                reading = self.config.solver.ohmmeter_test_voltage / i if i > OPEN_CURRENT else math.inf
            return Computed(voltage=v, measurement=reading)
        return Computed(voltage=v, measurement=v)
