"""
Topology resolution: wires and closed switches collapsed into equivalence classes.
"""

from .unionfind import UnionFind  # noqa: F401
from .resolver import Topology, resolve_topology  # noqa: F401

__all__ = ["UnionFind", "Topology", "resolve_topology"]
