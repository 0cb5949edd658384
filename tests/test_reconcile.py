from __future__ import annotations

import math

from ilp_core.errors import PresolveReconciliationError
from ilp_core.model import Variable
from ilp_core.reconcile import objective_value, reconcile_solution

VARIABLES = (
    Variable("x", 0, 10),
    Variable("fixed", 3, 3),
    Variable("y", 2, 8),
)


def test_every_variable_gets_a_value() -> None:
    solution = reconcile_solution(VARIABLES, {})

    assert solution == {"x": 0, "fixed": 3, "y": 2}


def test_fixed_variables_always_take_their_bound() -> None:
    solution = reconcile_solution(VARIABLES, {"x": 4, "fixed": 0, "y": 5})

    assert solution["fixed"] == 3


def test_reported_values_are_rounded_and_clamped() -> None:
    solution = reconcile_solution(VARIABLES, {"x": 6.9999999, "y": 8.0000001})

    assert solution == {"x": 7, "fixed": 3, "y": 8}


def test_non_finite_values_fall_back_to_lower_bound() -> None:
    solution = reconcile_solution(VARIABLES, {"x": math.nan, "y": math.inf})

    assert solution["x"] == 0
    assert solution["y"] == 2


def test_engine_fixed_value_is_used_for_eliminated_variables() -> None:
    solution = reconcile_solution(VARIABLES, {"x": 1}, fixed_value=lambda var: 6.0)

    assert solution["y"] == 6


def test_failed_lookup_falls_back_to_lower_bound() -> None:
    def lookup(var):
        raise PresolveReconciliationError("gone")

    solution = reconcile_solution(VARIABLES, {"x": 1}, fixed_value=lookup)

    assert solution["y"] == 2


def test_objective_value_ignores_zero_coefficients() -> None:
    solution = {"x": 4, "fixed": 3, "y": 5}

    assert objective_value([1.0, 0.0, -2.0], VARIABLES, solution) == -6.0
