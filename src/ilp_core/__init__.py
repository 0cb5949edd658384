"""Engine-agnostic integer linear programming core.

Requests are validated into a ``Polyhedron`` (every row in ``<=`` form), solved
by one configured backend for a batch of objectives, and reported with a
unified status taxonomy.
"""

from .config import SolverSettings, load_settings
from .contract import SolverBackend
from .errors import (
    ConfigError,
    EngineInitError,
    ILPSolveError,
    MissingDependencyError,
    SolveFailure,
    ValidationError,
    ValidationIssue,
)
from .model import (
    Direction,
    Outcome,
    Polyhedron,
    SolveRequest,
    SolveResponse,
    SparseMatrix,
    Variable,
    build_polyhedron,
    parse_request,
    validate_polyhedron,
)
from .orchestrator import Orchestrator
from .selector import BackendKind, available_backends, create_backend, select_backend
from .status import SolveStatus

__all__ = [
    "BackendKind",
    "ConfigError",
    "Direction",
    "EngineInitError",
    "ILPSolveError",
    "MissingDependencyError",
    "Orchestrator",
    "Outcome",
    "Polyhedron",
    "SolveFailure",
    "SolveRequest",
    "SolveResponse",
    "SolveStatus",
    "SolverBackend",
    "SolverSettings",
    "SparseMatrix",
    "ValidationError",
    "ValidationIssue",
    "Variable",
    "available_backends",
    "build_polyhedron",
    "create_backend",
    "load_settings",
    "parse_request",
    "select_backend",
    "validate_polyhedron",
]
