"""
Top-level namespace of the circuit simulation core.

- circuitsim.topology: node equivalence classes (union-find).
- circuitsim.static: per-tick nodal solver.
- circuitsim.behavior: LED thermal/failure, motor inertia, resistor shaping.
- circuitsim.bridge: digital pin levels pushed to controller simulators.
"""

from . import behavior  # noqa: F401
from . import bridge  # noqa: F401
from . import static  # noqa: F401
from . import topology  # noqa: F401
from .config import SimulationConfig  # noqa: F401
from .engine import Simulation, solve  # noqa: F401
from .snapshot import Element, Node, SnapshotError, Wire  # noqa: F401

__all__ = [
    "behavior",
    "bridge",
    "static",
    "topology",
    "SimulationConfig",
    "Simulation",
    "solve",
    "Element",
    "Node",
    "SnapshotError",
    "Wire",
]
