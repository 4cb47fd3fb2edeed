from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Sequence, Tuple
import logging

from ..snapshot import Element, Wire
from .unionfind import UnionFind

logger = logging.getLogger(__name__)

ShortQuery = Callable[[Element], Iterable[Tuple[str, str]]]


def _no_shorts(element: Element) -> Iterable[Tuple[str, str]]:
    return ()


@dataclass(frozen=True)
class Topology:
    """
    Electrical equivalence classes of one tick.

    Attributes:
        roots: Mapping node id -> representative id of its class.
        members: Mapping representative -> node ids of the class.
        labels: Mapping representative -> role labels found in the class.
        wired: Node ids touched by at least one active wire.
        skipped_wires: Ids of wires dropped because an endpoint does not exist.
    """
    roots: Dict[str, str]
    members: Dict[str, Tuple[str, ...]]
    labels: Dict[str, FrozenSet[str]]
    wired: FrozenSet[str] = frozenset()
    skipped_wires: Tuple[str, ...] = field(default_factory=tuple)

    def find(self, node_id: str | None) -> str | None:
        if node_id is None:
            return None
        return self.roots.get(node_id)

    def connected(self, a: str | None, b: str | None) -> bool:
        ra, rb = self.find(a), self.find(b)
        return ra is not None and ra == rb

    def labels_of(self, node_id: str) -> FrozenSet[str]:
        root = self.find(node_id)
        return self.labels.get(root, frozenset()) if root is not None else frozenset()


def resolve_topology(elements: Sequence[Element], wires: Sequence[Wire],
                     internal_shorts: ShortQuery = _no_shorts) -> Topology:
    """
    Collapse the wire/element graph into equivalence classes.

    Every node starts as a singleton. Non-deleted wires (hidden ones included)
    join their endpoints; `internal_shorts(element)` supplies the node pairs an
    element currently conducts between (closed switches, tied rails). Nodes of
    one element are never joined implicitly.

    Wires whose endpoints are not nodes of any element are skipped for this
    tick and reported in `Topology.skipped_wires`.

    Args:
        elements: Element snapshot.
        wires: Wire snapshot.
        internal_shorts: Capability query returning (node_id, node_id) pairs.

    Returns:
        Topology with fully compressed paths.
    """
    uf = UnionFind()
    labels_by_node: Dict[str, str] = {}
    for el in elements:
        for node in el.nodes:
            uf.add(node.id)
            if node.placeholder:
                labels_by_node[node.id] = node.placeholder

    wired: set[str] = set()
    skipped: List[str] = []
    for wire in wires:
        if wire.deleted:
            continue
        a, b = wire.from_node_id, wire.to_node_id
        if a not in uf or b not in uf:
            logger.debug("Skipping wire %s: dangling endpoint (%s -> %s)", wire.id, a, b)
            skipped.append(wire.id)
            continue
        uf.union(a, b)
        wired.update((a, b))

    for el in elements:
        for a, b in internal_shorts(el):
            uf.union(a, b)

    uf.compress()
    members = {root: tuple(ids) for root, ids in uf.groups().items()}
    labels: Dict[str, FrozenSet[str]] = {}
    for root, ids in members.items():
        labels[root] = frozenset(labels_by_node[i] for i in ids if i in labels_by_node)

    return Topology(
        roots=dict(uf.parent),
        members=members,
        labels=labels,
        wired=frozenset(wired),
        skipped_wires=tuple(skipped),
    )
