"""
Tick-level electrical solve.

    elements, wires
        -> electrical models (one per element)
        -> topology (wires + internal shorts, union-find)
        -> sub-circuits (scipy connected components over node classes)
        -> per sub-circuit: LED assumption loop, current-limit pass,
           hypothetical intact solve for exploded LEDs
        -> new Element list with fresh Computed bags
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence, Tuple
import logging
import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components

from ..config import SimulationConfig
from ..snapshot import Computed, Element, Wire, coerce_elements, coerce_wires
from ..topology import Topology, resolve_topology
from .circuit import StaticSolution, SubCircuit
from .components import StaticElement, build_model

logger = logging.getLogger(__name__)


@dataclass
class SolveReport:
    """
    Diagnostics of one solve.

    Attributes:
        subcircuits: Number of electrically isolated groups found.
        solved: Number of groups holding a source (or an ohmmeter) and solved.
        unconverged: Element ids of LEDs whose assumptions had to be forced to
            blocking after the iteration cap.
        singular: Number of linear solves that fell back to least squares.
        skipped_wires: Ids of wires with a dangling endpoint.
        shorted: Ids of elements flagged shorted (terminals joined, or an ideal loop over the ceiling).
        current_limited: Ids of bench supplies solved in constant-current mode.
    """
    subcircuits: int = 0
    solved: int = 0
    unconverged: List[str] = field(default_factory=list)
    singular: int = 0
    skipped_wires: Tuple[str, ...] = ()
    shorted: List[str] = field(default_factory=list)
    current_limited: List[str] = field(default_factory=list)


@dataclass
class SolveResult:
    elements: List[Element]
    topology: Topology
    report: SolveReport


def partition(models: Sequence[StaticElement], topology: Topology,
              order: Iterable[str]) -> List[Tuple[List[str], List[StaticElement]]]:
    """
    Split node classes into electrically isolated groups.

    Two classes belong to the same group when some model couples them. Models
    that couple nothing are left out.

    Args:
        models: Electrical models of the tick.
        topology: Resolved equivalence classes.
        order: Node ids in snapshot order (keeps the grouping deterministic).

    Returns:
        List of (class representatives, models) per group.
    """
    roots: List[str] = []
    index: Dict[str, int] = {}
    for node_id in order:
        root = topology.find(node_id)
        if root is not None and root not in index:
            index[root] = len(roots)
            roots.append(root)
    if not roots:
        return []

    rows: List[int] = []
    cols: List[int] = []
    for model in models:
        coupled = [index[r] for r in (topology.find(n) for n in model.coupled_nodes()) if r in index]
        for a, b in zip(coupled, coupled[1:]):
            rows.append(a)
            cols.append(b)
    n = len(roots)
    adjacency = coo_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n))
    n_groups, labels = connected_components(adjacency, directed=False)

    groups: List[Tuple[List[str], List[StaticElement]]] = [([], []) for _ in range(n_groups)]
    for root, label in zip(roots, labels):
        groups[label][0].append(root)
    for model in models:
        coupled = [r for r in (topology.find(n) for n in model.coupled_nodes()) if r in index]
        if coupled:
            groups[labels[index[coupled[0]]]][1].append(model)
    return [g for g in groups if g[1]]


def _iterate_leds(sub: SubCircuit, limited: FrozenSet[str], ignore_exploded: bool,
                  max_iter: int) -> Tuple[StaticSolution, bool, List[str], int]:
    """
    Piecewise-linear LED loop: solve, re-evaluate every die, repeat until the
    conducting set is stable. Dies still flipping at the cap are forced to
    blocking for one last solve.
    """
    dies = [d for m in sub.models for d in m.dies()]
    conducting: Dict[str, bool] = {d.key: False for d in dies}
    previous: Mapping[str, bool] = conducting
    singular = 0
    for _ in range(max(1, max_iter)):
        sol = sub.solve(conducting, limited, ignore_exploded)
        singular += sol.singular
        nxt = {d.key: d.conducts(sol, ignore_exploded) for d in dies}
        if nxt == conducting:
            return sol, True, [], singular
        previous, conducting = conducting, nxt

    flipping = [k for k in conducting if conducting[k] != previous[k]]
    conducting = {k: v and previous[k] for k, v in conducting.items()}
    logger.debug("LED iteration did not settle after %d passes; blocking %s", max_iter, flipping)
    sol = sub.solve(conducting, limited, ignore_exploded)
    return sol, False, flipping, singular + sol.singular


def _solve_group(sub: SubCircuit, config: SimulationConfig, report: SolveReport) -> Dict[str, Computed]:
    max_iter = config.solver.max_led_iterations
    limited: FrozenSet[str] = frozenset()
    sol, converged, flipping, singular = _iterate_leds(sub, limited, False, max_iter)
    report.singular += singular

    limited = frozenset(m.name for m in sub.models if m.exceeds_limit(sol))
    if limited:
        sol, converged, flipping, singular = _iterate_leds(sub, limited, False, max_iter)
        report.singular += singular
        report.current_limited.extend(sorted(limited))
    if not converged:
        report.unconverged.extend(sorted({k.split(":")[0] for k in flipping}))

    results = {m.name: m.results(sol) for m in sub.models}

    blown = [m for m in sub.models if any(d.exploded for d in m.dies())]
    if blown:
        intact, _, _, singular = _iterate_leds(sub, limited, True, max_iter)
        report.singular += singular
        for model in blown:
            estimate = model.results(intact).current
            results[model.name] = replace(results[model.name], explosion_current_estimate=estimate)

    return results


def solve_snapshot(elements: Iterable[Element | Mapping], wires: Iterable[Wire | Mapping],
                   config: SimulationConfig | None = None) -> SolveResult:
    """
    Solve one tick of the circuit.

    Sub-circuits without an independent source (and without an ohmmeter to
    excite them) read all-zero Computed bags. Nothing here raises for
    topological or numerical reasons; problems are logged and counted in the
    returned SolveReport.

    Args:
        elements: Element snapshot (dataclasses or editor mappings).
        wires: Wire snapshot (dataclasses or editor mappings).
        config: Simulation configuration; defaults apply if omitted.

    Returns:
        SolveResult with new Element instances carrying their Computed bags.
    """
    config = config or SimulationConfig()
    els = coerce_elements(elements)
    ws = coerce_wires(wires)
    models = [build_model(el, config) for el in els]
    by_id = {m.name: m for m in models}

    topology = resolve_topology(els, ws, internal_shorts=lambda el: by_id[el.id].internal_shorts())
    report = SolveReport(skipped_wires=topology.skipped_wires)

    computed: Dict[str, Computed] = {m.name: m.idle_results(topology) for m in models}
    order = (n.id for el in els for n in el.nodes)
    groups = partition(models, topology, order)
    report.subcircuits = len(groups)
    for roots, group_models in groups:
        sub = SubCircuit(models=group_models, roots=roots, topology=topology, config=config)
        if not (sub.powered or sub.testable):
            continue
        report.solved += 1
        computed.update(_solve_group(sub, config, report))
    report.shorted = [el.id for el in els if computed[el.id].shorted]

    return SolveResult(
        elements=[el.with_computed(computed[el.id]) for el in els],
        topology=topology,
        report=report,
    )
