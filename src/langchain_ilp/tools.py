"""LangChain tool definitions for polyhedron validation and ILP solving."""

from typing import Any, Callable, Dict, List, Optional
import logging

from langchain_core.tools import tool
from pydantic import BaseModel, Field

from ilp_core.config import SolverSettings
from ilp_core.contract import SolverBackend
from ilp_core.errors import ValidationError
from ilp_core.model import parse_request, validate_polyhedron
from ilp_core.orchestrator import Orchestrator
from ilp_core.quota import SolverQuota, SolverUnavailableError
from ilp_core.selector import select_backend


LOGGER = logging.getLogger("langchain_ilp.tools")

POLYHEDRON_FORMAT_GUIDE = """
Polyhedron format (JSON):

- A: sparse matrix {"rows": [...], "cols": [...], "vals": [...], "shape": {"nrows": m, "ncols": n}}.
  Entry k places vals[k] at (rows[k], cols[k]); indices are 0-based.
- b: right-hand side, one number per row. Every row reads A[i] . x <= b[i].
- variables: one {"id": "...", "bound": [lower, upper]} per column, in column order.
  Bounds are integers; lower == upper fixes the variable.
- senses (optional): "<=" or ">=" per row; ">=" rows are flipped to "<=" before solving.

Example (maximize x + y subject to x + y <= 10, 0 <= x, y <= 10):
{"A": {"rows": [0, 0], "cols": [0, 1], "vals": [1, 1], "shape": {"nrows": 1, "ncols": 2}},
 "b": [10],
 "variables": [{"id": "x", "bound": [0, 10]}, {"id": "y", "bound": [0, 10]}]}
"""


class ValidatePolyhedronInput(BaseModel):
    """Input schema for polyhedron validation."""

    polyhedron: Dict[str, Any] = Field(description="Sparse polyhedron {A, b, variables}")


class SolveILPInput(BaseModel):
    """Input schema for ILP solving."""

    polyhedron: Dict[str, Any] = Field(description="Sparse polyhedron {A, b, variables}")
    objectives: List[Dict[str, float]] = Field(
        description="Objectives as {variable_id: coefficient} maps, solved in order",
    )
    direction: str = Field(default="maximize", description="'maximize' or 'minimize'")
    use_presolve: Optional[bool] = Field(
        default=None,
        description="Override the engine presolve setting for this request",
    )


def _format_validation_issues(issues: list) -> list:
    return [issue.as_dict() for issue in issues]


def create_validate_polyhedron_tool() -> Callable:
    """Create a LangChain tool for validating polyhedra.

    Returns:
        A LangChain tool callable.
    """

    @tool(
        "validate_polyhedron",
        args_schema=ValidatePolyhedronInput,
        description=(
            f"Validates a sparse integer polyhedron without solving it. "
            f"Checks matrix index lengths and ranges, the right-hand side length, "
            f"variable ids and bounds. Use this before solve_ilp to diagnose issues. "
            f"\n\n{POLYHEDRON_FORMAT_GUIDE}"
        ),
    )
    def validate_polyhedron_tool(polyhedron: Dict[str, Any]) -> dict:
        """Validate a polyhedron and return structured issues.

        Returns:
            Dictionary with 'valid' (bool) and 'issues' (list) keys.
        """
        LOGGER.info("validate_polyhedron tool called")
        issues = validate_polyhedron(polyhedron)

        if issues:
            LOGGER.warning("Polyhedron validation found %s issue(s)", len(issues))
            return {"valid": False, "issues": _format_validation_issues(issues)}

        LOGGER.info("Polyhedron passed validation")
        return {"valid": True, "issues": []}

    return validate_polyhedron_tool


def create_solve_tool(
    backend: Optional[SolverBackend] = None,
    settings: Optional[SolverSettings] = None,
) -> Callable:
    """Create a LangChain tool for solving multi-objective ILPs.

    Args:
        backend: Engine adapter to solve with. Defaults to the adapter selected
                 from ``settings``; it is resolved once, here.
        settings: Solver settings; defaults to ``SolverSettings()``.

    Returns:
        A LangChain tool callable.
    """
    settings = settings or SolverSettings()
    backend = backend if backend is not None else select_backend(settings)
    orchestrator = Orchestrator(backend, settings)
    solver_quota = SolverQuota(settings.max_parallel_solvers)

    @tool(
        "solve_ilp",
        args_schema=SolveILPInput,
        description=(
            f"Solves an integer linear program with {backend.name} for one or more linear "
            f"objectives over the same constraints. The request is validated first; if any "
            f"issues are found they are returned without solving. On success the output holds "
            f"one outcome per objective, in order, with a status code (1 Undefined, 2 Feasible, "
            f"3 Infeasible, 4 NoFeasible, 5 Optimal, 6 Unbounded, 7 SimplexFailed, 8 MIPFailed, "
            f"9 EmptySpace), the objective value and the variable assignments. "
            f"\n\n{POLYHEDRON_FORMAT_GUIDE}"
        ),
    )
    def solve_ilp_tool(
        polyhedron: Dict[str, Any],
        objectives: List[Dict[str, float]],
        direction: str = "maximize",
        use_presolve: Optional[bool] = None,
    ) -> dict:
        """Solve every objective over the polyhedron.

        Returns:
            Dictionary with a 'solutions' list or an error message.
        """
        LOGGER.info("solve_ilp tool called (objectives=%s, direction=%s)", len(objectives), direction)

        try:
            request = parse_request(
                {
                    "polyhedron": polyhedron,
                    "objectives": objectives,
                    "direction": direction,
                    "use_presolve": use_presolve,
                }
            )
        except ValidationError as exc:
            LOGGER.warning("Request validation failed with %s issue(s)", len(exc.issues))
            return {
                "error": "Request validation failed",
                "issues": _format_validation_issues(exc.issues),
            }

        try:
            with solver_quota.claim():
                response = orchestrator.solve(request)
        except SolverUnavailableError as exc:
            LOGGER.warning("%s", str(exc))
            return {"error": str(exc)}
        except Exception as exc:
            message = f"Solver execution failed: {exc}"
            LOGGER.exception("Solver execution failed")
            return {"error": message}

        LOGGER.info("solve_ilp completed successfully")
        return response.to_payload()

    return solve_ilp_tool
