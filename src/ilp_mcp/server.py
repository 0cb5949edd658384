from __future__ import annotations

"""Model Context Protocol server exposing the multi-objective ILP solver."""

import argparse
import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
from fastmcp.tools.tool import ToolResult

from . import __version__
from ilp_core.config import SolverSettings, load_settings
from ilp_core.contract import SolverBackend
from ilp_core.errors import ConfigError, EngineInitError, ValidationError, ValidationIssue
from ilp_core.model import SolveResponse, parse_request, validate_polyhedron
from ilp_core.orchestrator import Orchestrator
from ilp_core.quota import SolverQuota, SolverUnavailableError
from ilp_core.selector import BackendKind, available_backends, select_backend

LOGGER = logging.getLogger("ilp_mcp.server")

INSTRUCTIONS = """Use ilp-mcp to optimise several linear objectives over one set of integer-bounded variables. Workflow: (1) restate the problem; (2) encode it as a polyhedron (see format below); (3) optionally call validate_polyhedron; (4) call solve_ilp once with every objective you need; (5) report each outcome's status, objective value and key variables.

- Polyhedron: {"A": {"rows": [...], "cols": [...], "vals": [...], "shape": {"nrows": m, "ncols": n}}, "b": [...], "variables": [{"id": "x", "bound": [lower, upper]}, ...]}. Entry k of A places vals[k] at (rows[k], cols[k]); indices are 0-based and column j belongs to variables[j].
- Constraints: every row i reads sum_j A[i][j] * x_j <= b[i]. To state a ">=" row either negate it yourself or pass "senses": ["<=", ">=", ...] with one entry per row.
- Variables are integers bounded by [lower, upper]; a variable with lower == upper is fixed. Use [0, 1] for binaries.
- Objectives: a list of {variable_id: coefficient} maps. Ids that are not variables are ignored; an empty map has objective 0.
- Direction: "maximize" or "minimize", shared by every objective.

Each outcome carries a status code: 1 Undefined, 2 Feasible, 3 Infeasible, 4 NoFeasible, 5 Optimal, 6 Unbounded, 7 SimplexFailed, 8 MIPFailed, 9 EmptySpace. Only Optimal and Feasible outcomes carry an objective value.
"""

SOLVE_ILP_DESCRIPTION = "This tool solves an integer linear program for one or more linear objectives over the same constraints (A x <= b with integer variable bounds). Input is a sparse polyhedron, a list of objectives and a direction. Output is one outcome per objective, in order, with status, objective value and variable assignments."

VALIDATE_POLYHEDRON_DESCRIPTION = "This tool validates a sparse polyhedron (matrix indices, shape, right-hand side length, variable ids and bounds) without solving it. Use this before solve_ilp to diagnose issues."

HEALTH_DESCRIPTION = "This tool reports which ILP backend the server is running and which engines are installed."


class ILPSolveHandler:
    """Business logic for the solve_ilp, validate_polyhedron and health tools."""

    def __init__(
        self,
        backend: Optional[SolverBackend] = None,
        *,
        settings: Optional[SolverSettings] = None,
        instructions: str | None = None,
    ) -> None:
        self.settings = settings or SolverSettings()
        self.instructions = instructions or INSTRUCTIONS
        self.backend = backend if backend is not None else select_backend(self.settings)
        self._orchestrator = Orchestrator(self.backend, self.settings)
        self._solver_quota = SolverQuota(self.settings.max_parallel_solvers)

    def validate_polyhedron(self, polyhedron: Dict[str, Any]) -> ToolResult:
        """Validate a polyhedron payload and return structured issues."""
        LOGGER.info("Tool call received: validate_polyhedron")

        issues = validate_polyhedron(polyhedron)
        if issues:
            LOGGER.warning("Polyhedron validation found %s issue(s)", len(issues))
            return ToolResult(
                content=_issue_text("Polyhedron validation found the following issues:", issues),
                structured_content={
                    "valid": False,
                    "issues": [issue.as_dict() for issue in issues],
                },
            )

        LOGGER.info("Tool validate_polyhedron: polyhedron is valid")
        return ToolResult(
            content="Polyhedron is valid.",
            structured_content={"valid": True, "issues": []},
        )

    def solve(
        self,
        polyhedron: Dict[str, Any],
        objectives: List[Dict[str, float]],
        direction: str,
        use_presolve: bool | None = None,
    ) -> ToolResult:
        LOGGER.info(
            "Tool call received: solve_ilp (objectives=%s, direction=%s)",
            len(objectives) if isinstance(objectives, list) else "?",
            direction,
        )

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
            return ToolResult(
                content=_issue_text(
                    "Request validation failed. Fix the issues below before calling solve_ilp:", exc.issues
                ),
                structured_content={
                    "error": "Request validation failed",
                    "issues": [issue.as_dict() for issue in exc.issues],
                },
            )

        try:
            with self._solver_quota.claim():
                response = self._orchestrator.solve(request)
        except SolverUnavailableError as exc:
            message = str(exc)
            LOGGER.warning("%s", message)
            return ToolResult(content=message, structured_content={"error": message})
        except Exception as exc:  # pragma: no cover - push errors to the LLM
            message = f"{self.backend.name} execution failed: {exc}"
            LOGGER.exception("%s execution failed", self.backend.name)
            return ToolResult(content=message, structured_content={"error": str(exc)})

        LOGGER.info("Tool solve_ilp completed successfully")
        return ToolResult(content=summarise(response, self.backend.name), structured_content=response.to_payload())

    def health(self) -> ToolResult:
        payload = {
            "status": "ok",
            "version": __version__,
            "backend": self.backend.name,
            "use_presolve": self.settings.use_presolve,
            "time_limit": self.settings.time_limit,
            "max_parallel_solvers": self._solver_quota.max_parallel,
            "available_backends": [kind.value for kind in available_backends()],
        }
        return ToolResult(content=f"ilp-mcp {__version__} running {self.backend.name}", structured_content=payload)


def summarise(response: SolveResponse, backend_name: str) -> str:
    """Human readable digest of a solve response."""
    lines = [f"{backend_name} solved {len(response.solutions)} objective(s)."]
    for index, outcome in enumerate(response.solutions, start=1):
        line = f"  #{index}: {outcome.status.label}"
        if outcome.objective is not None:
            line += f", objective={outcome.objective:g}"
        if outcome.error:
            line += f" ({outcome.error})"
        lines.append(line)
    return "\n".join(lines)


def _issue_text(header: str, issues: List[ValidationIssue]) -> str:
    return "\n".join([header, *[f"  {issue.field}: {issue.message}" for issue in issues]])


def build_fastmcp_server(handler: ILPSolveHandler) -> FastMCP:
    server = FastMCP(
        name="ilp-mcp",
        version=__version__,
        instructions=handler.instructions,
    )

    @server.tool(name="validate_polyhedron", description=VALIDATE_POLYHEDRON_DESCRIPTION)
    def validate_polyhedron_tool(polyhedron: Dict[str, Any]) -> ToolResult:
        return handler.validate_polyhedron(polyhedron=polyhedron)

    @server.tool(name="solve_ilp", description=SOLVE_ILP_DESCRIPTION)
    def solve_ilp_tool(
        polyhedron: Dict[str, Any],
        objectives: List[Dict[str, float]],
        direction: str = "maximize",
        use_presolve: bool | None = None,
    ) -> ToolResult:
        return handler.solve(
            polyhedron=polyhedron,
            objectives=objectives,
            direction=direction,
            use_presolve=use_presolve,
        )

    @server.tool(name="health", description=HEALTH_DESCRIPTION)
    def health_tool() -> ToolResult:
        return handler.health()

    return server


async def _serve_stdio(server: FastMCP, log_level: str) -> None:
    await server.run_stdio_async(show_banner=False, log_level=log_level)


async def _serve_http(server: FastMCP, host: str, port: int, log_level: str) -> None:
    await server.run_http_async(
        transport="streamable-http",
        host=host,
        port=port,
        path="/mcp",
        show_banner=False,
        log_level=log_level,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ilp-mcp server")
    transport_group = parser.add_mutually_exclusive_group()
    transport_group.add_argument(
        "--stdio",
        action="store_true",
        help="Run using stdio transport (default)",
    )
    transport_group.add_argument(
        "--http",
        action="store_true",
        help="Run using the FastMCP streamable HTTP transport",
    )
    parser.add_argument("--http-host", default="127.0.0.1", help="HTTP bind host")
    parser.add_argument("--http-port", type=int, default=8765, help="HTTP bind port")
    parser.add_argument("--config", default=None, help="Path to a config.yaml with an ilp_solve section")
    parser.add_argument(
        "--solver",
        choices=[kind.value for kind in BackendKind],
        type=str.lower,
        default=None,
        help="ILP backend to run (overrides config and SOLVER)",
    )
    parser.add_argument(
        "--presolve",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable engine presolve by default",
    )
    parser.add_argument("--time-limit", type=float, default=None, help="Per-objective time limit in seconds")
    parser.add_argument("--threads", type=int, default=None, help="Engine threads (0 lets the engine decide)")
    parser.add_argument(
        "--max-solvers",
        type=int,
        default=None,
        help="Maximum number of concurrent solve requests",
    )
    parser.add_argument(
        "--parallel-objectives",
        type=int,
        default=None,
        help="Objectives solved concurrently within one request",
    )
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    return parser


def run(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    log_level = args.log_level.upper()
    logging.basicConfig(level=log_level, format="[%(levelname)s] %(message)s")

    try:
        settings = load_settings(
            args.config,
            overrides={
                "backend": args.solver,
                "use_presolve": args.presolve,
                "time_limit": args.time_limit,
                "threads": args.threads,
                "max_parallel_solvers": args.max_solvers,
                "parallel_objectives": args.parallel_objectives,
            },
        )
        backend = select_backend(settings)
    except (ConfigError, EngineInitError) as exc:
        LOGGER.error("%s", exc)
        return 1

    handler = ILPSolveHandler(backend, settings=settings)
    fastmcp_server = build_fastmcp_server(handler)

    try:
        if args.http:
            LOGGER.info("Starting HTTP MCP server on %s:%s", args.http_host, args.http_port)
            asyncio.run(_serve_http(fastmcp_server, args.http_host, args.http_port, log_level))
        else:
            LOGGER.info("Starting stdio MCP server")
            asyncio.run(_serve_stdio(fastmcp_server, log_level))
    except KeyboardInterrupt:
        LOGGER.info("Server interrupted by user")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
