"""
Steady-state electrical solver based on Modified Nodal Analysis.
"""

from .circuit import StaticSolution, SubCircuit  # noqa: F401
from .solver import SolveReport, SolveResult, partition, solve_snapshot  # noqa: F401
from . import components  # noqa: F401

__all__ = [
    "StaticSolution",
    "SubCircuit",
    "SolveReport",
    "SolveResult",
    "partition",
    "solve_snapshot",
    "components",
]
