from __future__ import annotations

"""HiGHS-backed ILP adapter (matrix-native)."""

import logging
from typing import Any, Dict, List, Optional, Sequence

try:
    import highspy
except ImportError:  # pragma: no cover - exercised only when HiGHS bindings are missing.
    highspy = None  # type: ignore[assignment]

from ..contract import failed_batch, run_guarded, solved_outcome
from ..errors import MissingDependencyError, SolveFailure
from ..model import Direction, Objective, Outcome, Polyhedron, align_objective
from ..status import SolveStatus, StatusMap

LOGGER = logging.getLogger("ilp_core.backends.highs")

_PRIMAL_FEASIBLE = 2
# Stopped early; a feasible incumbent may or may not exist.
_LIMIT_STATUSES = (
    "kTimeLimit",
    "kIterationLimit",
    "kSolutionLimit",
    "kInterrupt",
    "kObjectiveBound",
    "kObjectiveTarget",
    "kMemoryLimit",
)
_STATUS_NAMES = {
    "kOptimal": SolveStatus.OPTIMAL,
    "kInfeasible": SolveStatus.INFEASIBLE,
    "kUnbounded": SolveStatus.UNBOUNDED,
    # Every column carries finite bounds, so this verdict can only be infeasibility.
    "kUnboundedOrInfeasible": SolveStatus.INFEASIBLE,
    "kModelEmpty": SolveStatus.EMPTY_SPACE,
    "kPresolveError": SolveStatus.MIP_FAILED,
    "kSolveError": SolveStatus.MIP_FAILED,
    "kPostsolveError": SolveStatus.MIP_FAILED,
    **{name: SolveStatus.FEASIBLE for name in _LIMIT_STATUSES},
}


def highs_status_map() -> StatusMap:
    """Map ``HighsModelStatus`` members present in the installed highspy."""
    table: Dict[Any, SolveStatus] = {}
    if highspy is not None:
        for name, status in _STATUS_NAMES.items():
            member = getattr(highspy.HighsModelStatus, name, None)
            if member is not None:
                table[member] = status
    return StatusMap("HiGHS", table, failure=SolveStatus.MIP_FAILED)


class HighsBackend:
    """Solve integer programs by uploading the CSC matrix into one Highs model.

    The model is built once per batch; only the cost vector and sense change
    between objectives.
    """

    name = "HiGHS"

    def __init__(self, *, time_limit: Optional[float] = None, threads: int = 0) -> None:
        if highspy is None:
            raise MissingDependencyError(
                "HiGHS python bindings (highspy) are not installed. Install 'highspy' to use the highs backend."
            )
        self.time_limit = time_limit
        self.threads = threads
        self.status_map = highs_status_map()

    def solve(
        self,
        polyhedron: Polyhedron,
        objectives: Sequence[Objective],
        direction: Direction,
        use_presolve: bool,
    ) -> List[Outcome]:
        try:
            highs = self._load_model(polyhedron, direction, use_presolve)
        except Exception as exc:
            LOGGER.exception("Failed to load model into HiGHS")
            return failed_batch(
                polyhedron, len(objectives), SolveStatus.MIP_FAILED, f"HiGHS model setup failed: {exc}"
            )

        try:
            return [
                run_guarded(
                    self.name,
                    polyhedron,
                    self.status_map.failure,
                    lambda objective=objective: self._solve_objective(highs, polyhedron, objective),
                )
                for objective in objectives
            ]
        finally:
            _release(highs)

    def _load_model(self, polyhedron: Polyhedron, direction: Direction, use_presolve: bool) -> Any:
        highs = highspy.Highs()
        try:
            # Silence console logging so MCP stdio stays JSON-only.
            highs.setOptionValue("output_flag", False)
            highs.setOptionValue("log_to_console", False)
            highs.setOptionValue("presolve", "on" if use_presolve else "off")
            if self.time_limit is not None:
                highs.setOptionValue("time_limit", float(self.time_limit))
            if self.threads:
                highs.setOptionValue("threads", int(self.threads))

            lp = highspy.HighsLp()
            lp.num_col_ = polyhedron.ncols
            lp.num_row_ = polyhedron.nrows
            lp.col_cost_ = [0.0] * polyhedron.ncols
            lp.col_lower_ = [float(var.lower) for var in polyhedron.variables]
            lp.col_upper_ = [float(var.upper) for var in polyhedron.variables]
            lp.row_lower_ = [-highspy.kHighsInf] * polyhedron.nrows
            lp.row_upper_ = [float(rhs) for rhs in polyhedron.b]
            start, index, value = polyhedron.column_compressed(merge=True)
            lp.a_matrix_.format_ = highspy.MatrixFormat.kColwise
            lp.a_matrix_.num_col_ = polyhedron.ncols
            lp.a_matrix_.num_row_ = polyhedron.nrows
            lp.a_matrix_.start_ = start
            lp.a_matrix_.index_ = index
            lp.a_matrix_.value_ = value
            lp.integrality_ = [highspy.HighsVarType.kInteger] * polyhedron.ncols
            lp.sense_ = _sense(direction)

            status = highs.passModel(lp)
            if status == highspy.HighsStatus.kError:
                raise SolveFailure(f"HiGHS rejected the model (status={status}).")
        except Exception:
            _release(highs)
            raise
        return highs

    def _solve_objective(self, highs: Any, polyhedron: Polyhedron, objective: Objective) -> Outcome:
        costs = align_objective(polyhedron, objective)
        if costs:
            highs.changeColsCost(len(costs), list(range(len(costs))), costs)
        highs.clearSolver()

        run_status = highs.run()
        if run_status == highspy.HighsStatus.kError:
            raise SolveFailure(f"HiGHS solve failed (status={run_status}).")

        model_status = highs.getModelStatus()
        info = highs.getInfo()
        status = self.status_map.lookup(model_status)
        has_primal = getattr(info, "primal_solution_status", 0) == _PRIMAL_FEASIBLE
        error: Optional[str] = None
        if status is SolveStatus.FEASIBLE and not has_primal:
            status = SolveStatus.UNDEFINED
        if not status.has_solution:
            error = f"{self.status_map.describe(model_status)} ({highs.modelStatusToString(model_status)})"
        LOGGER.debug("HiGHS model_status=%s mapped to %s", model_status, status.label)

        reported: Dict[str, Optional[float]] = {}
        if has_primal:
            col_values = list(getattr(highs.getSolution(), "col_value", []) or [])
            for idx, value in enumerate(col_values[: polyhedron.ncols]):
                reported[polyhedron.variables[idx].id] = value

        lp = highs.getLp()
        return solved_outcome(
            polyhedron,
            costs,
            status,
            reported,
            fixed_value=_fixed_bound_lookup(polyhedron, lp),
            error=error,
        )


def _fixed_bound_lookup(polyhedron: Polyhedron, lp: Any):
    """Expose column bounds HiGHS fixed on its own copy of the model."""
    positions = {var.id: idx for idx, var in enumerate(polyhedron.variables)}
    lower = list(getattr(lp, "col_lower_", []) or [])
    upper = list(getattr(lp, "col_upper_", []) or [])

    def lookup(var) -> Optional[float]:
        idx = positions.get(var.id)
        if idx is None or idx >= len(lower) or idx >= len(upper):
            return None
        if lower[idx] == upper[idx]:
            return lower[idx]
        return None

    return lookup


def _sense(direction: Direction) -> Any:
    if direction is Direction.MAXIMIZE:
        return highspy.ObjSense.kMaximize
    return highspy.ObjSense.kMinimize


def _release(highs: Any) -> None:
    try:
        highs.clear()
    except Exception:  # pragma: no cover - defensive against exotic bindings
        LOGGER.warning("Failed to release HiGHS model", exc_info=True)


__all__ = ["HighsBackend", "highs_status_map"]
