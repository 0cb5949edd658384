from __future__ import annotations

"""Hexaly-backed adapter (expression-tree, local search).

Unlike the matrix-native engines, Hexaly is driven by building an expression
graph: one bounded integer decision per variable, one weighted sum compared
against ``b`` per row and one sum for the objective. Each objective gets its
own optimizer, opened and released through the optimizer's context manager.

Hexaly exposes no switch for its presolve, so ``use_presolve`` is a no-op here.
Its search cannot be interrupted from outside; ``time_limit`` (or, when unset,
an iteration limit) is what bounds a call.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

try:
    import hexaly.optimizer as hexaly_optimizer
except ImportError:  # pragma: no cover - exercised only when Hexaly is missing.
    hexaly_optimizer = None  # type: ignore[assignment]

from ..contract import run_guarded, solved_outcome
from ..errors import MissingDependencyError
from ..model import Direction, Objective, Outcome, Polyhedron, align_objective
from ..status import SolveStatus, StatusMap

LOGGER = logging.getLogger("ilp_core.backends.hexaly")

DEFAULT_ITERATION_LIMIT = 10_000_000

_STATUS_NAMES = {
    "OPTIMAL": SolveStatus.OPTIMAL,
    "FEASIBLE": SolveStatus.FEASIBLE,
    # The incumbent violates a constraint: nothing feasible was found.
    "INFEASIBLE": SolveStatus.NO_FEASIBLE,
    # Proven infeasible.
    "INCONSISTENT": SolveStatus.INFEASIBLE,
}


def hexaly_status_map() -> StatusMap:
    table: Dict[Any, SolveStatus] = {}
    if hexaly_optimizer is not None:
        for name, status in _STATUS_NAMES.items():
            member = getattr(hexaly_optimizer.HxSolutionStatus, name, None)
            if member is not None:
                table[member] = status
    return StatusMap("Hexaly", table, failure=SolveStatus.MIP_FAILED)


class HexalyBackend:
    name = "Hexaly"

    def __init__(self, *, time_limit: Optional[float] = None, threads: int = 0) -> None:
        if hexaly_optimizer is None:
            raise MissingDependencyError(
                "Hexaly python bindings (hexaly) are not installed. Install 'hexaly' to use the hexaly backend."
            )
        self.time_limit = time_limit
        self.threads = threads
        self.status_map = hexaly_status_map()

    def solve(
        self,
        polyhedron: Polyhedron,
        objectives: Sequence[Objective],
        direction: Direction,
        use_presolve: bool,
    ) -> List[Outcome]:
        LOGGER.debug("Hexaly has no independent presolve switch; use_presolve=%s ignored", use_presolve)
        rows = [[(col, val) for col, val in entries if val] for entries in polyhedron.row_entries()]
        violated = [idx for idx, entries in enumerate(rows) if not entries and polyhedron.b[idx] < 0]
        if violated:
            # An empty row reads 0 <= b; with b < 0 no assignment satisfies it.
            message = f"Row {violated[0]} has no coefficients and a negative right-hand side"
            return [
                solved_outcome(
                    polyhedron, align_objective(polyhedron, objective), SolveStatus.INFEASIBLE, {}, error=message
                )
                for objective in objectives
            ]
        return [
            run_guarded(
                self.name,
                polyhedron,
                self.status_map.failure,
                lambda objective=objective: self._solve_objective(polyhedron, rows, objective, direction),
            )
            for objective in objectives
        ]

    def _solve_objective(
        self,
        polyhedron: Polyhedron,
        rows: List[List[tuple]],
        objective: Objective,
        direction: Direction,
    ) -> Outcome:
        costs = align_objective(polyhedron, objective)
        with hexaly_optimizer.HexalyOptimizer() as optimizer:
            self._configure(optimizer.param)
            model = optimizer.model

            decisions = [model.int(var.lower, var.upper) for var in polyhedron.variables]

            for row_idx, entries in enumerate(rows):
                if not entries:
                    continue
                lhs = model.sum()
                for col, coeff in entries:
                    _add_term(model, lhs, coeff, decisions[col])
                model.constraint(model.leq(lhs, _scalar(polyhedron.b[row_idx])))

            goal = model.sum()
            terms = sum(_add_term(model, goal, coeff, decision) for coeff, decision in zip(costs, decisions))
            if not terms:
                # The objective must reference at least one decision.
                goal.add_operand(model.prod(0, decisions[0]))
            if direction is Direction.MAXIMIZE:
                model.maximize(goal)
            else:
                model.minimize(goal)

            model.close()
            optimizer.solve()

            native = optimizer.solution.status
            status = self.status_map.lookup(native)
            LOGGER.debug("Hexaly solution status=%s mapped to %s", native, status.label)
            error: Optional[str] = None
            if not status.has_solution:
                error = self.status_map.describe(native)

            reported: Dict[str, Optional[float]] = {}
            if status.has_solution:
                for var, decision in zip(polyhedron.variables, decisions):
                    reported[var.id] = decision.value
            return solved_outcome(polyhedron, costs, status, reported, error=error)

    def _configure(self, param: Any) -> None:
        param.verbosity = 0
        if self.threads:
            param.nb_threads = int(self.threads)
        if self.time_limit is not None:
            param.time_limit = max(1, int(math.ceil(self.time_limit)))
        else:
            param.iteration_limit = DEFAULT_ITERATION_LIMIT


def _add_term(model: Any, total: Any, coeff: float, decision: Any) -> bool:
    if coeff == 0:
        return False
    if coeff == 1:
        total.add_operand(decision)
    else:
        total.add_operand(model.prod(_scalar(coeff), decision))
    return True


def _scalar(value: float) -> Any:
    return int(value) if float(value).is_integer() else float(value)


__all__ = ["HexalyBackend", "hexaly_status_map"]
