from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from ilp_core.contract import solved_outcome
from ilp_core.model import Direction, Outcome, Polyhedron, align_objective
from ilp_core.status import SolveStatus


def make_payload(
    rows: Sequence[int],
    cols: Sequence[int],
    vals: Sequence[float],
    b: Sequence[float],
    bounds: Dict[str, Sequence[int]],
    *,
    senses: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "A": {
            "rows": list(rows),
            "cols": list(cols),
            "vals": list(vals),
            "shape": {"nrows": len(b), "ncols": len(bounds)},
        },
        "b": list(b),
        "variables": [{"id": var_id, "bound": list(bound)} for var_id, bound in bounds.items()],
    }
    if senses is not None:
        payload["senses"] = list(senses)
    return payload


@pytest.fixture
def payload_factory() -> Callable[..., Dict[str, Any]]:
    return make_payload


@pytest.fixture
def sum_le_ten() -> Dict[str, Any]:
    """x + y <= 10 with 0 <= x, y <= 10."""
    return make_payload([0, 0], [0, 1], [1, 1], [10], {"x": (0, 10), "y": (0, 10)})


class StubBackend:
    """Answers every objective with the upper bound of each variable."""

    name = "Stub"

    def __init__(self, status: SolveStatus = SolveStatus.OPTIMAL) -> None:
        self.status = status
        self.calls: List[Dict[str, Any]] = []

    def solve(
        self,
        polyhedron: Polyhedron,
        objectives: Sequence[Dict[str, float]],
        direction: Direction,
        use_presolve: bool,
    ) -> List[Outcome]:
        self.calls.append(
            {"objectives": list(objectives), "direction": direction, "use_presolve": use_presolve}
        )
        reported = {var.id: var.upper for var in polyhedron.variables}
        return [
            solved_outcome(polyhedron, align_objective(polyhedron, objective), self.status, reported)
            for objective in objectives
        ]


@pytest.fixture
def stub_backend() -> StubBackend:
    return StubBackend()
