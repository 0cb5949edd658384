from __future__ import annotations

"""Gurobi-backed ILP adapter (matrix-native).

One licensed environment is opened per batch and closed on every exit path; a
fresh model is built inside it for each objective.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

try:
    import gurobipy as gp
    from gurobipy import GRB
except ImportError:  # pragma: no cover - exercised only when gurobipy is missing.
    gp = None  # type: ignore[assignment]
    GRB = None  # type: ignore[assignment]

from ..contract import failed_batch, run_guarded, solved_outcome
from ..errors import EngineInitError, MissingDependencyError, PresolveReconciliationError
from ..model import Direction, Objective, Outcome, Polyhedron, align_objective
from ..status import SolveStatus, StatusMap

LOGGER = logging.getLogger("ilp_core.backends.gurobi")

_STATUS_NAMES = {
    "OPTIMAL": SolveStatus.OPTIMAL,
    "INFEASIBLE": SolveStatus.INFEASIBLE,
    # Every column carries finite bounds, so "infeasible or unbounded" can only be infeasible.
    "INF_OR_UNBD": SolveStatus.INFEASIBLE,
    "UNBOUNDED": SolveStatus.UNBOUNDED,
    "SUBOPTIMAL": SolveStatus.FEASIBLE,
    "TIME_LIMIT": SolveStatus.FEASIBLE,
    "NODE_LIMIT": SolveStatus.FEASIBLE,
    "SOLUTION_LIMIT": SolveStatus.FEASIBLE,
    "ITERATION_LIMIT": SolveStatus.FEASIBLE,
    "INTERRUPTED": SolveStatus.FEASIBLE,
    "WORK_LIMIT": SolveStatus.FEASIBLE,
    "MEM_LIMIT": SolveStatus.FEASIBLE,
    "USER_OBJ_LIMIT": SolveStatus.FEASIBLE,
    "NUMERIC": SolveStatus.MIP_FAILED,
}


def gurobi_status_map() -> StatusMap:
    table: Dict[Any, SolveStatus] = {}
    if GRB is not None:
        for name, status in _STATUS_NAMES.items():
            code = getattr(GRB, name, None)
            if code is not None:
                table[code] = status
    return StatusMap("Gurobi", table, failure=SolveStatus.MIP_FAILED)


class GurobiBackend:
    name = "Gurobi"

    def __init__(self, *, time_limit: Optional[float] = None, threads: int = 0) -> None:
        if gp is None:
            raise MissingDependencyError(
                "Gurobi python bindings (gurobipy) are not installed. Install 'gurobipy' to use the gurobi backend."
            )
        self.time_limit = time_limit
        self.threads = threads
        self.status_map = gurobi_status_map()

    def solve(
        self,
        polyhedron: Polyhedron,
        objectives: Sequence[Objective],
        direction: Direction,
        use_presolve: bool,
    ) -> List[Outcome]:
        try:
            env = self._open_env(use_presolve)
        except EngineInitError as exc:
            LOGGER.error("%s", exc)
            return failed_batch(polyhedron, len(objectives), SolveStatus.MIP_FAILED, str(exc))

        with env:
            return [
                run_guarded(
                    self.name,
                    polyhedron,
                    self.status_map.failure,
                    lambda objective=objective: self._solve_objective(
                        env, polyhedron, objective, direction
                    ),
                )
                for objective in objectives
            ]

    def _open_env(self, use_presolve: bool) -> Any:
        env = None
        try:
            env = gp.Env(empty=True)
            # Disable Gurobi console output; 0 threads lets Gurobi use every core.
            env.setParam("OutputFlag", 0)
            env.setParam("Threads", int(self.threads))
            # -1 = automatic, 0 = off
            env.setParam("Presolve", -1 if use_presolve else 0)
            if self.time_limit is not None:
                env.setParam("TimeLimit", float(self.time_limit))
            env.start()
        except gp.GurobiError as exc:
            if env is not None:
                env.dispose()
            raise EngineInitError(f"Failed to create Gurobi environment: {exc}") from exc
        return env

    def _solve_objective(
        self, env: Any, polyhedron: Polyhedron, objective: Objective, direction: Direction
    ) -> Outcome:
        costs = align_objective(polyhedron, objective)
        with gp.Model("ilp", env=env) as model:
            columns = [
                model.addVar(
                    lb=var.lower,
                    ub=var.upper,
                    vtype=GRB.BINARY if var.is_binary else GRB.INTEGER,
                    name=var.id,
                )
                for var in polyhedron.variables
            ]
            for row_idx, entries in enumerate(polyhedron.row_entries()):
                expr = gp.LinExpr([val for _, val in entries], [columns[col] for col, _ in entries])
                model.addLConstr(expr, GRB.LESS_EQUAL, float(polyhedron.b[row_idx]), name=f"c{row_idx}")

            sense = GRB.MAXIMIZE if direction is Direction.MAXIMIZE else GRB.MINIMIZE
            model.setObjective(gp.LinExpr(costs, columns), sense)
            model.optimize()

            native = model.Status
            status = self.status_map.lookup(native)
            has_incumbent = model.SolCount > 0
            if status is SolveStatus.FEASIBLE and not has_incumbent:
                status = SolveStatus.UNDEFINED
            error: Optional[str] = None
            if not status.has_solution:
                error = self.status_map.describe(native)
            elif native != GRB.OPTIMAL:
                error = f"Gurobi stopped with status code {native}"
            LOGGER.debug("Gurobi status=%s mapped to %s", native, status.label)

            reported: Dict[str, Optional[float]] = {}
            if has_incumbent:
                for var, column in zip(polyhedron.variables, columns):
                    try:
                        reported[var.id] = column.X
                    except gp.GurobiError:
                        # Eliminated by presolve; reconciled below.
                        continue

            return solved_outcome(
                polyhedron,
                costs,
                status,
                reported,
                fixed_value=_fixed_bound_lookup(polyhedron, columns),
                error=error,
            )


def _fixed_bound_lookup(polyhedron: Polyhedron, columns: List[Any]):
    positions = {var.id: idx for idx, var in enumerate(polyhedron.variables)}

    def lookup(var) -> Optional[float]:
        column = columns[positions[var.id]]
        try:
            lower, upper = column.LB, column.UB
        except gp.GurobiError as exc:
            raise PresolveReconciliationError(f"Gurobi exposes no bounds for {var.id!r}: {exc}") from exc
        return lower if lower == upper else None

    return lookup


__all__ = ["GurobiBackend", "gurobi_status_map"]
