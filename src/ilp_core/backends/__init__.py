"""Engine adapters implementing the ``SolverBackend`` contract."""

from .glpk import GlpkBackend
from .gurobi import GurobiBackend
from .hexaly import HexalyBackend
from .highs import HighsBackend

__all__ = [
    "GlpkBackend",
    "GurobiBackend",
    "HexalyBackend",
    "HighsBackend",
]
