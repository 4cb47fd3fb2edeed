from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Sequence, Tuple
import logging
import numpy as np

from ..config import SimulationConfig
from ..topology import Topology, UnionFind
from .components.base import StaticElement, StampData

logger = logging.getLogger(__name__)


def ideal_loop_branches(models: Sequence[StaticElement], topology: Topology) -> FrozenSet[Tuple[str, int]]:
    """
    Zero-resistance voltage branches that lie on a loop made only of such branches.

    Such a loop fixes the same voltage difference twice (two ideal sources in
    parallel, an ammeter across a rail), which leaves the MNA matrix singular.
    A branch is on a loop when its two node classes are still joined by the
    other ideal branches.
    """
    branches = [((m.name, k), topology.find(a), topology.find(b))
                for m in models for k, a, b in m.ideal_branches(topology)]
    branches = [br for br in branches if br[1] is not None and br[2] is not None]
    looped = set()
    for key, a, b in branches:
        uf = UnionFind()
        for other, x, y in branches:
            if other == key:
                continue
            uf.extend((x, y))
            uf.union(x, y)
        if a == b or (a in uf and b in uf and uf.find(a) == uf.find(b)):
            looped.add(key)
    return frozenset(looped)


@dataclass
class StaticSolution:
    """
    Node voltages and auxiliary currents of one solved sub-circuit, plus the
    assumptions (conducting dies, current-limited supplies) it was solved under.
    """
    reference: str
    node_index: Dict[str, int]
    node_voltages: np.ndarray
    aux_values: Dict[str, np.ndarray]
    topology: Topology
    conducting: Mapping[str, bool] = field(default_factory=dict)
    current_limited: FrozenSet[str] = frozenset()
    powered: bool = True
    ignore_exploded: bool = False
    singular: bool = False
    ideal_loop: FrozenSet[Tuple[str, int]] = frozenset()

    def node_voltage(self, node_id: str | None) -> float:
        """Voltage of a node id against the reference; unknown nodes read 0 V."""
        root = self.topology.find(node_id)
        if root is None or root == self.reference or root not in self.node_index:
            return 0.0
        return float(self.node_voltages[self.node_index[root]])

    def aux_scalar(self, element_name: str) -> float:
        values = self.aux_values.get(element_name)
        if values is None or values.size == 0:
            return 0.0
        return float(values[0])


@dataclass
class SubCircuit:
    """
    One electrically isolated group of node classes and the models touching it.

    Rows of the MNA system are the class representatives except the
    reference, followed by the auxiliary currents of voltage-defined branches.
    """

    models: List[StaticElement]
    roots: Sequence[str]
    topology: Topology
    config: SimulationConfig = field(default_factory=SimulationConfig)
    reference: str = field(init=False)
    node_index: Dict[str, int] = field(init=False)
    aux_map: Dict[str, tuple[int, ...]] = field(init=False)
    ideal_loop: FrozenSet[Tuple[str, int]] = field(init=False)

    def __post_init__(self) -> None:
        self.reference = self._pick_reference()
        node_names = [r for r in self.roots if r != self.reference]
        self.node_index = {name: idx for idx, name in enumerate(node_names)}

        self.aux_map = {}
        cursor = len(node_names)
        for model in self.models:
            n_aux = model.num_aux_vars()
            self.aux_map[model.name] = tuple(range(cursor, cursor + n_aux))
            cursor += n_aux
        self.size = cursor
        self.ideal_loop = ideal_loop_branches(self.models, self.topology)
        if self.ideal_loop:
            logger.debug("Ideal voltage branches form a loop: %s", sorted(self.ideal_loop))

    @property
    def powered(self) -> bool:
        return any(m.is_source(self.topology) for m in self.models)

    @property
    def testable(self) -> bool:
        return any(m.is_test_source() for m in self.models)

    def _pick_reference(self) -> str:
        low = self.config.pins.low_prefix.upper()
        for root in self.roots:
            if any(label.upper().startswith(low) for label in self.topology.labels.get(root, ())):
                return root
        for model in self.models:
            if model.is_source(self.topology):
                root = self.topology.find(model.reference_node())
                if root is not None and root in self.roots:
                    return root
        return self.roots[0]

    def solve(self, conducting: Mapping[str, bool] | None = None,
              current_limited: FrozenSet[str] = frozenset(),
              ignore_exploded: bool = False) -> StaticSolution:
        """
        Assemble and solve Y x = b for the given piecewise-linear assumptions.

        A gmin shunt from every node row to the reference keeps floating nodes
        defined. A singular system falls back to a least-squares solution.
        """
        conducting = dict(conducting or {})
        n_nodes = len(self.node_index)
        Y = np.zeros((self.size, self.size), dtype=float)
        b = np.zeros(self.size, dtype=float)
        powered = self.powered
        stamp_data = StampData(
            Y=Y,
            b=b,
            node_index=self.node_index,
            aux_map=self.aux_map,
            topology=self.topology,
            reference=self.reference,
            conducting=conducting,
            current_limited=current_limited,
            powered=powered,
            ignore_exploded=ignore_exploded,
            ideal_loop=self.ideal_loop,
            config=self.config,
        )

        for model in self.models:
            model.stamp(stamp_data)
        idx = np.arange(n_nodes)
        Y[idx, idx] += self.config.solver.gmin

        singular = False
        try:
            solution_vector = np.linalg.solve(Y, b)
            if not np.all(np.isfinite(solution_vector)):
                raise np.linalg.LinAlgError("Non-finite solution.")
        except np.linalg.LinAlgError:
            logger.warning("Singular MNA system (%d unknowns); using least squares", self.size)
            solution_vector = np.linalg.lstsq(Y, b, rcond=None)[0]
            singular = True

        aux_values: Dict[str, np.ndarray] = {}
        for name, indices in self.aux_map.items():
            if not indices:
                continue
            aux_values[name] = solution_vector[np.array(indices, dtype=int)]

        return StaticSolution(
            reference=self.reference,
            node_index=self.node_index,
            node_voltages=solution_vector[:n_nodes],
            aux_values=aux_values,
            topology=self.topology,
            conducting=conducting,
            current_limited=current_limited,
            powered=powered,
            ignore_exploded=ignore_exploded,
            singular=singular,
            ideal_loop=self.ideal_loop,
        )
