from __future__ import annotations
from dataclasses import dataclass, field
from abc import ABC, abstractmethod
from typing import Dict, FrozenSet, Iterable, Mapping, Tuple, TYPE_CHECKING
import numpy as np

from ...config import SimulationConfig
from ...snapshot import Computed, Element
from ...topology import Topology

if TYPE_CHECKING:
    from ..circuit import StaticSolution

Array = np.ndarray


@dataclass
class StampData:
    """
    Shared view of the MNA system of one sub-circuit during stamping.

    Attributes:
        Y: Conductance matrix (node rows first, then auxiliary branch currents).
        b: Right-hand side vector (current injections and source voltages).
        node_index: Mapping class representative -> row/column (reference excluded).
        aux_map: Mapping model name -> tuple of auxiliary indices.
        topology: Equivalence classes of the tick.
        reference: Representative pinned to 0 V.
        conducting: LED die key -> assumed forward-conducting for this pass.
        current_limited: Ids of bench supplies stamped as current sources.
        powered: Whether the sub-circuit holds an independent source.
        ignore_exploded: Treat exploded LEDs as intact (hypothetical solve).
        ideal_loop: (model name, branch) keys of zero-resistance voltage
            branches that close a loop among themselves.
        config: Simulation configuration.
    """
    Y: Array
    b: Array
    node_index: Dict[str, int]
    aux_map: Dict[str, Tuple[int, ...]]
    topology: Topology
    reference: str
    conducting: Mapping[str, bool] = field(default_factory=dict)
    current_limited: FrozenSet[str] = frozenset()
    powered: bool = True
    ignore_exploded: bool = False
    ideal_loop: FrozenSet[Tuple[str, int]] = frozenset()
    config: SimulationConfig = field(default_factory=SimulationConfig)

    def node(self, node_id: str | None) -> int | None:
        root = self.topology.find(node_id)
        if root is None:
            return None
        return self.node_index.get(root)

    def aux(self, name: str) -> Tuple[int, ...]:
        return self.aux_map.get(name, tuple())


def stamp_conductance(data: StampData, n_plus: str | None, n_minus: str | None, g: float) -> None:
    if g == 0:
        return
    ip = data.node(n_plus)
    ineg = data.node(n_minus)
    if ip is not None:
        data.Y[ip, ip] += g
    if ineg is not None:
        data.Y[ineg, ineg] += g
    if ip is not None and ineg is not None:
        data.Y[ip, ineg] -= g
        data.Y[ineg, ip] -= g


def stamp_resistance(data: StampData, n_plus: str | None, n_minus: str | None, resistance: float) -> None:
    r = max(float(resistance), data.config.solver.min_resistance)
    stamp_conductance(data, n_plus, n_minus, 1.0 / r)


def stamp_current_source(data: StampData, n_plus: str | None, n_minus: str | None, current: float) -> None:
    """
    Positive current flows from n_plus to n_minus through the source,
    i.e. it is drawn out of n_plus and injected into n_minus.
    """
    ip = data.node(n_plus)
    ineg = data.node(n_minus)
    if ip is not None:
        data.b[ip] -= current
    if ineg is not None:
        data.b[ineg] += current


def stamp_voltage_source(data: StampData, aux_idx: int, n_plus: str | None, n_minus: str | None,
                         voltage: float, resistance: float = 0.0) -> None:
    """
    V(n_plus) - V(n_minus) = voltage - resistance * i_out.

    The auxiliary unknown is the current entering n_plus through the source,
    so the current delivered to the external circuit is its negation.
    """
    ip = data.node(n_plus)
    ineg = data.node(n_minus)
    if ip is not None:
        data.Y[ip, aux_idx] += 1.0
        data.Y[aux_idx, ip] += 1.0
    if ineg is not None:
        data.Y[ineg, aux_idx] -= 1.0
        data.Y[aux_idx, ineg] -= 1.0
    data.Y[aux_idx, aux_idx] -= resistance
    data.b[aux_idx] += voltage


def stamp_inert_aux(data: StampData, aux_idx: int) -> None:
    """Pin an unused auxiliary current to zero so the system stays regular."""
    data.Y[aux_idx, aux_idx] = 1.0
    data.b[aux_idx] = 0.0


@dataclass(frozen=True)
class Die:
    """
    One LED junction as a piecewise-linear branch.

    Blocking it is open; conducting it is a `vf` source behind `rs`, stamped as
    its Norton equivalent (g = 1/rs in parallel with vf*g from cathode to anode).
    """
    key: str
    anode: str | None
    cathode: str | None
    vf: float
    rs: float
    exploded: bool = False

    def active(self, ignore_exploded: bool = False) -> bool:
        return ignore_exploded or not self.exploded

    def forward_voltage(self, solution: StaticSolution) -> float:
        return solution.node_voltage(self.anode) - solution.node_voltage(self.cathode)

    def conducts(self, solution: StaticSolution, ignore_exploded: bool = False) -> bool:
        return self.active(ignore_exploded) and self.forward_voltage(solution) >= self.vf

    def stamp(self, data: StampData) -> None:
        if not self.active(data.ignore_exploded) or not data.conducting.get(self.key, False):
            return
        g = 1.0 / max(self.rs, data.config.solver.min_resistance)
        stamp_conductance(data, self.anode, self.cathode, g)
        stamp_current_source(data, self.cathode, self.anode, self.vf * g)

    def current(self, solution: StaticSolution) -> float:
        if not self.active(solution.ignore_exploded) or not solution.conducting.get(self.key, False):
            return 0.0
        return max(0.0, (self.forward_voltage(solution) - self.vf) / self.rs)


class StaticElement(ABC):
    """
    Base class for the electrical model of one snapshot element.

    Subclasses describe how the element couples nodes (for the sub-circuit
    partition), which node pairs it shorts internally (for the topology
    resolver), how it is stamped into the MNA system and how its Computed bag
    is read back from a solution.
    """

    def __init__(self, element: Element, config: SimulationConfig) -> None:
        self.element = element
        self.config = config
        self.name = element.id

    # ---- topology ----
    def internal_shorts(self) -> Iterable[Tuple[str, str]]:
        return ()

    def coupled_nodes(self) -> Tuple[str, ...]:
        """Node ids this element ties together electrically (via its stamp)."""
        return tuple(n.id for n in self.element.nodes)

    # ---- sources ----
    def is_source(self, topology: Topology) -> bool:
        return False

    def reference_node(self) -> str | None:
        """Node to pin at 0 V if no GND-labelled class exists."""
        return None

    def is_test_source(self) -> bool:
        """True for instruments that excite an otherwise unpowered sub-circuit."""
        return False

    def exceeds_limit(self, solution: StaticSolution) -> bool:
        return False

    # ---- ideal voltage branches ----
    def ideal_branches(self, topology: Topology) -> Iterable[Tuple[int, str, str]]:
        """
        (branch, n_plus, n_minus) of every zero-resistance voltage branch this
        element stamps in the current topology. `branch` is the auxiliary offset.
        """
        return ()

    def branch_resistance(self, data: StampData, branch: int, resistance: float) -> float:
        """Series resistance to stamp; an ideal branch inside an ideal loop gets the floor."""
        if resistance <= 0 and (self.name, branch) in data.ideal_loop:
            return data.config.solver.min_resistance
        return resistance

    def loop_overloaded(self, solution: StaticSolution, current: float, branch: int = 0) -> bool:
        """True if an ideal-loop branch carries more than the short-circuit ceiling."""
        return ((self.name, branch) in solution.ideal_loop
                and abs(current) > self.config.solver.short_circuit_current)

    # ---- piecewise-linear dies ----
    def dies(self) -> Tuple[Die, ...]:
        return ()

    # ---- stamping ----
    def num_aux_vars(self) -> int:
        return 0

    @abstractmethod
    def stamp(self, data: StampData) -> None:
        """
        Add this element's contribution to the global Y,b system.
        """

    @abstractmethod
    def results(self, solution: StaticSolution) -> Computed:
        """
        Return the Computed bag of this element.
        """

    def idle_results(self, topology: Topology) -> Computed:
        """Computed bag when the element's sub-circuit holds no source."""
        return Computed()

    def branch_voltage(self, solution: StaticSolution, i: int = 0, j: int = 1) -> float:
        return solution.node_voltage(self.element.node_id(i)) - solution.node_voltage(self.element.node_id(j))


class Passive(StaticElement):
    """Element without an electrical stamp (signal consumers, notes, switches)."""

    def coupled_nodes(self) -> Tuple[str, ...]:
        return ()

    def stamp(self, data: StampData) -> None:
        return None

    def results(self, solution: StaticSolution) -> Computed:
        return Computed()
