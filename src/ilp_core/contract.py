from __future__ import annotations

"""The capability every solver backend implements, plus outcome helpers.

Backends are not related by inheritance: matrix-native engines and the
expression-tree engine build their models in unrelated ways, so the contract is
a structural ``Protocol`` and the shared pieces are plain functions.
"""

import logging
from typing import Callable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .errors import SolveFailure
from .model import Direction, Objective, Outcome, Polyhedron
from .reconcile import FixedValueLookup, objective_value, reconcile_solution
from .status import SolveStatus

LOGGER = logging.getLogger("ilp_core.contract")


@runtime_checkable
class SolverBackend(Protocol):
    """Solve an ordered batch of objectives over one constraint set.

    Implementations must return exactly one outcome per objective, in input
    order, with every variable id present in every outcome. A failing
    objective is reported through its own outcome and never aborts the rest
    of the batch; no engine exception may escape ``solve``.
    """

    name: str

    def solve(
        self,
        polyhedron: Polyhedron,
        objectives: Sequence[Objective],
        direction: Direction,
        use_presolve: bool,
    ) -> List[Outcome]:
        ...


def failed_outcome(polyhedron: Polyhedron, status: SolveStatus, error: str) -> Outcome:
    """Outcome for an objective without a usable solution."""
    return Outcome(
        status=status,
        objective=None,
        solution=reconcile_solution(polyhedron.variables, {}),
        error=error,
    )


def solved_outcome(
    polyhedron: Polyhedron,
    coefficients: Sequence[float],
    status: SolveStatus,
    reported: Mapping[str, Optional[float]],
    *,
    fixed_value: Optional[FixedValueLookup] = None,
    error: Optional[str] = None,
) -> Outcome:
    """Reconcile the engine values and evaluate the objective on them."""
    solution = reconcile_solution(polyhedron.variables, reported, fixed_value)
    if not status.has_solution:
        return Outcome(status=status, objective=None, solution=solution, error=error)
    value = objective_value(coefficients, polyhedron.variables, solution)
    return Outcome(status=status, objective=value, solution=solution, error=error)


def failed_batch(
    polyhedron: Polyhedron, count: int, status: SolveStatus, error: str
) -> List[Outcome]:
    return [failed_outcome(polyhedron, status, error) for _ in range(count)]


def run_guarded(
    engine: str,
    polyhedron: Polyhedron,
    failure_status: SolveStatus,
    solve_one: Callable[[], Outcome],
) -> Outcome:
    """Run one objective and convert any engine failure into its outcome."""
    try:
        return solve_one()
    except SolveFailure as exc:
        status = SolveStatus(exc.status) if exc.status else failure_status
        LOGGER.warning("%s solve failure: %s", engine, exc)
        return failed_outcome(polyhedron, status, str(exc))
    except Exception as exc:  # foreign engine errors are reported, never raised
        LOGGER.exception("%s raised during solve", engine)
        return failed_outcome(polyhedron, failure_status, f"{engine} solve failed: {exc}")


__all__ = [
    "SolverBackend",
    "failed_batch",
    "failed_outcome",
    "run_guarded",
    "solved_outcome",
]
