from __future__ import annotations

"""Drive one request's batch of objectives through the active backend."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from .config import SolverSettings
from .contract import SolverBackend, failed_outcome
from .model import Direction, Objective, Outcome, Polyhedron, SolveRequest, SolveResponse
from .status import SolveStatus

LOGGER = logging.getLogger("ilp_core.orchestrator")


class Orchestrator:
    """Solve every objective of a request against one shared constraint set.

    Objectives run as a single backend batch by default. With
    ``parallel_objectives > 1`` each objective becomes its own single-objective
    batch on a worker thread, so every worker builds an independent native
    model; backends that set ``supports_parallel = False`` always run
    sequentially. Outcomes are returned in objective order either way.
    """

    def __init__(self, backend: SolverBackend, settings: Optional[SolverSettings] = None) -> None:
        self.backend = backend
        self.settings = settings or SolverSettings()

    def solve(self, request: SolveRequest) -> SolveResponse:
        objectives = list(request.objectives)
        if not objectives:
            return SolveResponse(solutions=[])

        polyhedron = request.polyhedron
        if polyhedron.ncols == 0:
            LOGGER.info("Polyhedron has no variables; skipping %s", self.backend.name)
            return SolveResponse(
                solutions=[
                    Outcome(status=SolveStatus.EMPTY_SPACE, objective=0.0, solution={})
                    for _ in objectives
                ]
            )

        use_presolve = self.settings.use_presolve if request.use_presolve is None else request.use_presolve
        workers = self._workers(len(objectives))

        started = time.perf_counter()
        if workers > 1:
            outcomes = self._solve_parallel(polyhedron, objectives, request.direction, use_presolve, workers)
        else:
            outcomes = self._call_backend(polyhedron, objectives, request.direction, use_presolve)
        elapsed = time.perf_counter() - started

        LOGGER.info(
            "Solved %d objective(s) over %dx%d with %s in %.3fs (workers=%d, presolve=%s)",
            len(objectives),
            polyhedron.nrows,
            polyhedron.ncols,
            self.backend.name,
            elapsed,
            workers,
            "on" if use_presolve else "off",
        )
        return SolveResponse(solutions=outcomes)

    def _workers(self, count: int) -> int:
        if not getattr(self.backend, "supports_parallel", True):
            return 1
        return max(1, min(self.settings.parallel_objectives, count))

    def _solve_parallel(
        self,
        polyhedron: Polyhedron,
        objectives: Sequence[Objective],
        direction: Direction,
        use_presolve: bool,
        workers: int,
    ) -> List[Outcome]:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ilp-objective") as pool:
            futures = [
                pool.submit(self._call_backend, polyhedron, [objective], direction, use_presolve)
                for objective in objectives
            ]
            outcomes: List[Outcome] = []
            for index, future in enumerate(futures):
                try:
                    outcomes.append(future.result()[0])
                except Exception as exc:
                    LOGGER.exception("Objective %d worker failed", index)
                    outcomes.append(
                        failed_outcome(polyhedron, SolveStatus.UNDEFINED, f"Objective worker failed: {exc}")
                    )
        return outcomes

    def _call_backend(
        self,
        polyhedron: Polyhedron,
        objectives: Sequence[Objective],
        direction: Direction,
        use_presolve: bool,
    ) -> List[Outcome]:
        name = self.backend.name
        try:
            outcomes = list(self.backend.solve(polyhedron, objectives, direction, use_presolve))
        except Exception as exc:
            LOGGER.exception("%s let an exception escape solve()", name)
            message = f"{name} backend raised: {exc}"
            return [failed_outcome(polyhedron, SolveStatus.UNDEFINED, message) for _ in objectives]

        expected = len(objectives)
        if len(outcomes) != expected:
            LOGGER.error(
                "%s returned %d outcome(s) for %d objective(s); filling the gap",
                name,
                len(outcomes),
                expected,
            )
            outcomes = outcomes[:expected]
            message = f"{name} returned no outcome for this objective"
            while len(outcomes) < expected:
                outcomes.append(failed_outcome(polyhedron, SolveStatus.UNDEFINED, message))
        return outcomes


__all__ = ["Orchestrator"]
