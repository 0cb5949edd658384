from __future__ import annotations

"""GLPK-backed ILP adapter (matrix-native) built on the swiglpk bindings."""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

try:
    import swiglpk as glp
except ImportError:  # pragma: no cover - exercised only when GLPK bindings are missing.
    glp = None  # type: ignore[assignment]

from ..contract import failed_batch, run_guarded, solved_outcome
from ..errors import MissingDependencyError, SolveFailure
from ..model import Direction, Objective, Outcome, Polyhedron, align_objective
from ..status import SolveStatus, StatusMap

LOGGER = logging.getLogger("ilp_core.backends.glpk")

# glp_mip_status / glp_get_status codes (GLP_UNDEF .. GLP_UNBND).
GLPK_STATUS_MAP = StatusMap(
    "GLPK",
    {
        1: SolveStatus.UNDEFINED,
        2: SolveStatus.FEASIBLE,
        3: SolveStatus.INFEASIBLE,
        4: SolveStatus.NO_FEASIBLE,
        5: SolveStatus.OPTIMAL,
        6: SolveStatus.UNBOUNDED,
    },
    failure=SolveStatus.MIP_FAILED,
)

# glp_intopt return codes that carry a verdict rather than a failure.
_GLP_ENOPFS = 0x0A
_GLP_ENODFS = 0x0B
_GLP_ETMLIM = 0x09
_GLP_EMIPGAP = 0x0E
_GLP_ESTOP = 0x0D
_STOPPED_EARLY = (_GLP_ETMLIM, _GLP_EMIPGAP, _GLP_ESTOP)


class GlpkBackend:
    """Load the triplets once into a GLPK problem and re-solve per objective."""

    name = "GLPK"
    # GLPK keeps process-global state; objectives never run concurrently.
    supports_parallel = False

    def __init__(self, *, time_limit: Optional[float] = None, threads: int = 0) -> None:
        if glp is None:
            raise MissingDependencyError(
                "GLPK python bindings (swiglpk) are not installed. Install 'swiglpk' to use the glpk backend."
            )
        self.time_limit = time_limit
        # GLPK is single-threaded; the knob is accepted for a uniform constructor.
        self.threads = threads
        self.status_map = GLPK_STATUS_MAP

    def solve(
        self,
        polyhedron: Polyhedron,
        objectives: Sequence[Objective],
        direction: Direction,
        use_presolve: bool,
    ) -> List[Outcome]:
        glp.glp_term_out(glp.GLP_OFF)
        lp = glp.glp_create_prob()
        try:
            try:
                self._load_model(lp, polyhedron, direction)
            except Exception as exc:
                LOGGER.exception("Failed to load model into GLPK")
                return failed_batch(
                    polyhedron, len(objectives), SolveStatus.MIP_FAILED, f"GLPK model setup failed: {exc}"
                )
            return [
                run_guarded(
                    self.name,
                    polyhedron,
                    self.status_map.failure,
                    lambda objective=objective: self._solve_objective(
                        lp, polyhedron, objective, use_presolve
                    ),
                )
                for objective in objectives
            ]
        finally:
            glp.glp_delete_prob(lp)

    def _load_model(self, lp: Any, polyhedron: Polyhedron, direction: Direction) -> None:
        glp.glp_set_obj_dir(lp, glp.GLP_MAX if direction is Direction.MAXIMIZE else glp.GLP_MIN)

        # GLPK treats a zero count as a fatal error, hence the guards.
        if polyhedron.nrows:
            glp.glp_add_rows(lp, polyhedron.nrows)
            for i, rhs in enumerate(polyhedron.b, start=1):
                glp.glp_set_row_bnds(lp, i, glp.GLP_UP, 0.0, float(rhs))

        if polyhedron.ncols:
            glp.glp_add_cols(lp, polyhedron.ncols)
            for j, var in enumerate(polyhedron.variables, start=1):
                if var.is_fixed:
                    glp.glp_set_col_bnds(lp, j, glp.GLP_FX, float(var.lower), float(var.upper))
                else:
                    glp.glp_set_col_bnds(lp, j, glp.GLP_DB, float(var.lower), float(var.upper))
                glp.glp_set_col_kind(lp, j, glp.GLP_BV if var.is_binary else glp.GLP_IV)

        # glp_load_matrix rejects repeated positions.
        entries = polyhedron.merged_entries()
        ia = glp.intArray(len(entries) + 1)
        ja = glp.intArray(len(entries) + 1)
        ar = glp.doubleArray(len(entries) + 1)
        for k, (row, col, val) in enumerate(entries, start=1):
            ia[k] = row + 1
            ja[k] = col + 1
            ar[k] = val
        glp.glp_load_matrix(lp, len(entries), ia, ja, ar)

    def _solve_objective(
        self, lp: Any, polyhedron: Polyhedron, objective: Objective, use_presolve: bool
    ) -> Outcome:
        costs = align_objective(polyhedron, objective)
        for j, coeff in enumerate(costs, start=1):
            glp.glp_set_obj_coef(lp, j, coeff)

        if not use_presolve:
            # Without the MIP presolver GLPK needs an optimal LP relaxation basis.
            relaxation = self._solve_relaxation(lp)
            if relaxation is not SolveStatus.OPTIMAL:
                return solved_outcome(
                    polyhedron,
                    costs,
                    relaxation,
                    {},
                    error=f"GLPK LP relaxation ended with status {relaxation.label}",
                )

        params = glp.glp_iocp()
        glp.glp_init_iocp(params)
        params.msg_lev = glp.GLP_MSG_OFF
        params.presolve = glp.GLP_ON if use_presolve else glp.GLP_OFF
        if self.time_limit is not None:
            params.tm_lim = _milliseconds(self.time_limit)

        ret = glp.glp_intopt(lp, params)
        if ret == _GLP_ENOPFS:
            return solved_outcome(
                polyhedron, costs, SolveStatus.INFEASIBLE, {}, error="LP relaxation has no primal feasible solution"
            )
        if ret == _GLP_ENODFS:
            return solved_outcome(
                polyhedron, costs, SolveStatus.UNBOUNDED, {}, error="LP relaxation has no dual feasible solution"
            )
        if ret != 0 and ret not in _STOPPED_EARLY:
            raise SolveFailure(f"GLPK MIP solver failed with code: {ret}", SolveStatus.MIP_FAILED)

        native = glp.glp_mip_status(lp)
        status = self.status_map.lookup(native)
        error: Optional[str] = None
        if not status.has_solution:
            error = self.status_map.describe(native)
        elif ret in _STOPPED_EARLY:
            error = f"GLPK search stopped early (code {ret})"
        LOGGER.debug("GLPK mip_status=%s mapped to %s", native, status.label)

        reported: Dict[str, Optional[float]] = {}
        if status.has_solution:
            for j, var in enumerate(polyhedron.variables, start=1):
                reported[var.id] = glp.glp_mip_col_val(lp, j)
        return solved_outcome(
            polyhedron,
            costs,
            status,
            reported,
            fixed_value=_fixed_column_lookup(lp, polyhedron),
            error=error,
        )

    def _solve_relaxation(self, lp: Any) -> SolveStatus:
        params = glp.glp_smcp()
        glp.glp_init_smcp(params)
        params.msg_lev = glp.GLP_MSG_OFF
        if self.time_limit is not None:
            params.tm_lim = _milliseconds(self.time_limit)
        ret = glp.glp_simplex(lp, params)
        if ret != 0:
            raise SolveFailure(f"GLPK simplex failed with code: {ret}", SolveStatus.SIMPLEX_FAILED)
        native = glp.glp_get_status(lp)
        if native == glp.GLP_OPT:
            return SolveStatus.OPTIMAL
        if native == glp.GLP_NOFEAS:
            return SolveStatus.INFEASIBLE
        if native == glp.GLP_UNBND:
            return SolveStatus.UNBOUNDED
        return SolveStatus.UNDEFINED


def _fixed_column_lookup(lp: Any, polyhedron: Polyhedron):
    positions = {var.id: j for j, var in enumerate(polyhedron.variables, start=1)}

    def lookup(var) -> Optional[float]:
        j = positions.get(var.id)
        if j is None or glp.glp_get_col_type(lp, j) != glp.GLP_FX:
            return None
        return glp.glp_get_col_lb(lp, j)

    return lookup


def _milliseconds(seconds: float) -> int:
    return max(1, int(math.ceil(float(seconds) * 1000)))


__all__ = ["GLPK_STATUS_MAP", "GlpkBackend"]
