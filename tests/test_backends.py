"""Behavioural scenarios run against every installed engine."""

from __future__ import annotations

import pytest

from ilp_core.model import Direction, build_polyhedron
from ilp_core.selector import create_backend
from ilp_core.status import SolveStatus

# Engines that prove optimality and infeasibility; Hexaly is a local search.
EXACT = {"glpk", "highs", "gurobi"}


def _hexaly_ready() -> None:
    optimizer = pytest.importorskip("hexaly.optimizer")
    try:
        with optimizer.HexalyOptimizer():
            pass
    except Exception as exc:  # license missing or expired
        pytest.skip(f"Hexaly unavailable: {exc}")


def _gurobi_ready() -> None:
    gp = pytest.importorskip("gurobipy")
    try:
        with gp.Env(params={"OutputFlag": 0}):
            pass
    except gp.GurobiError as exc:
        pytest.skip(f"Gurobi unavailable: {exc}")


_READY = {
    "glpk": lambda: pytest.importorskip("swiglpk"),
    "highs": lambda: pytest.importorskip("highspy"),
    "gurobi": _gurobi_ready,
    "hexaly": _hexaly_ready,
}


@pytest.fixture(params=sorted(_READY))
def engine(request):
    _READY[request.param]()
    return request.param


@pytest.fixture
def backend(engine):
    return create_backend(engine, time_limit=2)


def _assert_solved(engine, outcome, objective):
    if engine in EXACT:
        assert outcome.status is SolveStatus.OPTIMAL
    else:
        assert outcome.status.has_solution
    assert outcome.objective == objective


@pytest.mark.parametrize("use_presolve", [True, False])
def test_bounded_sum_is_maximised(engine, backend, sum_le_ten, use_presolve) -> None:
    polyhedron = build_polyhedron(sum_le_ten)

    [outcome] = backend.solve(polyhedron, [{"x": 1, "y": 1}], Direction.MAXIMIZE, use_presolve)

    _assert_solved(engine, outcome, 10.0)
    assert outcome.solution["x"] + outcome.solution["y"] == 10


@pytest.mark.parametrize("use_presolve", [True, False])
def test_contradictory_rows_are_infeasible(engine, backend, payload_factory, use_presolve) -> None:
    # -x <= -5 and x <= 3
    polyhedron = build_polyhedron(payload_factory([0, 1], [0, 0], [-1, 1], [-5, 3], {"x": (0, 10)}))

    [outcome] = backend.solve(polyhedron, [{"x": 1}], Direction.MAXIMIZE, use_presolve)

    if engine in EXACT:
        assert outcome.status is SolveStatus.INFEASIBLE
    else:
        assert outcome.status in (SolveStatus.INFEASIBLE, SolveStatus.NO_FEASIBLE)
    assert outcome.objective is None
    assert set(outcome.solution) == {"x"}


@pytest.mark.parametrize("use_presolve", [True, False])
def test_repeated_triplets_are_summed(engine, backend, payload_factory, use_presolve) -> None:
    # 0.5x + 0.5x + y <= 10
    payload = payload_factory([0, 0, 0], [0, 0, 1], [0.5, 0.5, 1], [10], {"x": (0, 10), "y": (0, 10)})
    polyhedron = build_polyhedron(payload)

    [outcome] = backend.solve(polyhedron, [{"x": 1, "y": 1}], Direction.MAXIMIZE, use_presolve)

    _assert_solved(engine, outcome, 10.0)
    assert outcome.solution["x"] + outcome.solution["y"] == 10


def test_ge_row_is_honoured(engine, backend, payload_factory) -> None:
    payload = payload_factory([0, 0], [0, 1], [1, 1], [2], {"x": (0, 10), "y": (0, 10)}, senses=[">="])
    polyhedron = build_polyhedron(payload)

    [outcome] = backend.solve(polyhedron, [{"x": 1, "y": 1}], Direction.MINIMIZE, True)

    _assert_solved(engine, outcome, 2.0)


def test_empty_objective_is_zero(engine, backend, sum_le_ten) -> None:
    polyhedron = build_polyhedron(sum_le_ten)

    [outcome] = backend.solve(polyhedron, [{}], Direction.MAXIMIZE, True)

    assert outcome.status.has_solution
    assert outcome.objective == 0.0


@pytest.mark.parametrize("use_presolve", [True, False])
def test_fixed_variables_report_their_bound(engine, backend, payload_factory, use_presolve) -> None:
    payload = payload_factory(
        [0, 0, 0], [0, 1, 2], [1, 1, 1], [10], {"fixed": (3, 3), "y": (0, 5), "z": (0, 9)}
    )
    polyhedron = build_polyhedron(payload)

    outcomes = backend.solve(polyhedron, [{"y": 1}, {"z": 1}], Direction.MAXIMIZE, use_presolve)

    assert [outcome.solution["fixed"] for outcome in outcomes] == [3, 3]
    _assert_solved(engine, outcomes[0], 5.0)
    _assert_solved(engine, outcomes[1], 7.0)


def test_batch_outcomes_follow_objective_order(engine, backend, payload_factory) -> None:
    payload = payload_factory([0, 0], [0, 1], [1, 1], [10], {"x": (0, 4), "y": (0, 8)})
    polyhedron = build_polyhedron(payload)
    objectives = [{"x": 1}, {"y": 1}, {"x": 1, "y": 1}, {"x": 1, "ghost": 100}]

    outcomes = backend.solve(polyhedron, objectives, Direction.MAXIMIZE, True)

    assert len(outcomes) == len(objectives)
    for outcome, expected in zip(outcomes, [4.0, 8.0, 10.0, 4.0]):
        _assert_solved(engine, outcome, expected)
        assert set(outcome.solution) == {"x", "y"}


def test_repeated_solves_agree(engine, backend, sum_le_ten) -> None:
    polyhedron = build_polyhedron(sum_le_ten)
    objectives = [{"x": 2, "y": 1}]

    first = backend.solve(polyhedron, objectives, Direction.MAXIMIZE, True)
    second = backend.solve(polyhedron, objectives, Direction.MAXIMIZE, True)

    assert [(o.status, o.objective) for o in first] == [(o.status, o.objective) for o in second]


def test_pairwise_capacity_admits_one_binary(engine, backend, payload_factory) -> None:
    # x + y <= 1, y + z <= 1, x + z <= 1 over binaries: at most one can be set.
    payload = payload_factory(
        [0, 0, 1, 1, 2, 2],
        [0, 1, 1, 2, 0, 2],
        [1, 1, 1, 1, 1, 1],
        [1, 1, 1],
        {"x": (0, 1), "y": (0, 1), "z": (0, 1)},
    )
    polyhedron = build_polyhedron(payload)

    [outcome] = backend.solve(polyhedron, [{"x": 1, "y": 1, "z": 1}], Direction.MAXIMIZE, True)

    _assert_solved(engine, outcome, 1.0)
    assert sum(outcome.solution.values()) == 1
