from __future__ import annotations

import pytest

from ilp_core.errors import ValidationError
from ilp_core.model import (
    Direction,
    Outcome,
    SolveResponse,
    align_objective,
    build_polyhedron,
    parse_request,
    validate_polyhedron,
)
from ilp_core.status import SolveStatus


def test_build_polyhedron_keeps_le_rows(sum_le_ten) -> None:
    polyhedron = build_polyhedron(sum_le_ten)

    assert polyhedron.nrows == 1
    assert polyhedron.ncols == 2
    assert polyhedron.b == (10.0,)
    assert polyhedron.variable_ids == ["x", "y"]
    assert polyhedron.A.vals == (1.0, 1.0)


def test_ge_rows_are_negated_once(payload_factory) -> None:
    payload = payload_factory(
        [0, 0, 1], [0, 1, 0], [1, 1, 1], [2, 7], {"x": (0, 10), "y": (0, 10)}, senses=[">=", "<="]
    )

    polyhedron = build_polyhedron(payload)

    assert polyhedron.A.vals == (-1.0, -1.0, 1.0)
    assert polyhedron.b == (-2.0, 7.0)


def test_duplicate_entries_are_passed_through(payload_factory) -> None:
    payload = payload_factory([0, 0], [0, 0], [1, 2], [5], {"x": (0, 5)})

    polyhedron = build_polyhedron(payload)

    assert polyhedron.A.nnz == 2
    assert list(polyhedron.A.triplets()) == [(0, 0, 1.0), (0, 0, 2.0)]


def test_column_compressed_layout(payload_factory) -> None:
    payload = payload_factory([0, 1, 0], [1, 0, 0], [2, 3, 4], [1, 1], {"x": (0, 1), "y": (0, 1)})

    start, index, value = build_polyhedron(payload).column_compressed()

    assert start == [0, 2, 3]
    assert index == [1, 0, 0]
    assert value == [3.0, 4.0, 2.0]


def test_merged_layout_sums_repeated_positions(payload_factory) -> None:
    # (1, 1) cancels out and is dropped.
    payload = payload_factory(
        [0, 0, 0, 1, 1], [0, 0, 1, 1, 1], [0.5, 0.5, 1, 2, -2], [10, 0], {"x": (0, 10), "y": (0, 10)}
    )
    polyhedron = build_polyhedron(payload)

    assert polyhedron.merged_entries() == [(0, 0, 1.0), (0, 1, 1.0)]
    start, index, value = polyhedron.column_compressed(merge=True)

    assert start == [0, 1, 2]
    assert index == [0, 0]
    assert value == [1.0, 1.0]
    assert polyhedron.A.nnz == 5
    assert polyhedron.column_compressed()[0] == [0, 2, 5]


def test_row_entries_groups_by_row(payload_factory) -> None:
    payload = payload_factory([1, 0, 1], [0, 1, 1], [5, 6, 7], [0, 0, 0], {"x": (0, 1), "y": (0, 1)})

    rows = build_polyhedron(payload).row_entries()

    assert rows == [[(1, 6.0)], [(0, 5.0), (1, 7.0)], []]


def test_mismatched_index_lengths_are_rejected(payload_factory) -> None:
    payload = payload_factory([0, 0], [0], [1, 1], [10], {"x": (0, 10)})

    with pytest.raises(ValidationError) as excinfo:
        build_polyhedron(payload)

    assert excinfo.value.issues[0].field == "polyhedron.A"


def test_out_of_shape_indices_are_rejected(payload_factory) -> None:
    payload = payload_factory([0, 3], [0, 2], [1, 1], [10], {"x": (0, 10), "y": (0, 10)})

    fields = [issue.field for issue in validate_polyhedron(payload)]

    assert "polyhedron.A.rows[1]" in fields
    assert "polyhedron.A.cols[1]" in fields


def test_rhs_and_variable_counts_must_match_shape(sum_le_ten) -> None:
    sum_le_ten["b"] = [10, 4]
    sum_le_ten["variables"] = sum_le_ten["variables"][:1]

    fields = {issue.field for issue in validate_polyhedron(sum_le_ten)}

    assert fields == {"polyhedron.b", "polyhedron.variables"}


def test_inverted_bound_is_rejected(payload_factory) -> None:
    payload = payload_factory([0], [0], [1], [1], {"x": (4, 2)})

    issues = validate_polyhedron(payload)

    assert issues
    assert "exceeds upper bound" in issues[0].message


def test_duplicate_variable_ids_are_rejected(sum_le_ten) -> None:
    sum_le_ten["variables"][1]["id"] = "x"

    issues = validate_polyhedron(sum_le_ten)

    assert any("duplicate" in issue.message for issue in issues)


def test_unknown_sense_is_rejected(sum_le_ten) -> None:
    sum_le_ten["senses"] = ["=="]

    issues = validate_polyhedron(sum_le_ten)

    assert issues[0].field == "polyhedron.senses[0]"


def test_valid_polyhedron_has_no_issues(sum_le_ten) -> None:
    assert validate_polyhedron(sum_le_ten) == []


def test_parse_request_collects_every_issue(sum_le_ten) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_request(
            {
                "polyhedron": sum_le_ten,
                "objectives": [{"x": "one"}],
                "direction": "sideways",
                "use_presolve": "yes",
            }
        )

    fields = {issue.field for issue in excinfo.value.issues}
    assert fields == {"objectives[0].x", "direction", "use_presolve"}


def test_parse_request_builds_request(sum_le_ten) -> None:
    request = parse_request(
        {"polyhedron": sum_le_ten, "objectives": [{"x": 1}, {}], "direction": "MAXIMIZE"}
    )

    assert request.direction is Direction.MAXIMIZE
    assert request.objectives == ({"x": 1.0}, {})
    assert request.use_presolve is None


def test_align_objective_drops_unknown_ids(sum_le_ten) -> None:
    polyhedron = build_polyhedron(sum_le_ten)

    assert align_objective(polyhedron, {"y": 2, "ghost": 9}) == [0.0, 2.0]


def test_response_payload_uses_integer_status() -> None:
    response = SolveResponse(
        solutions=[Outcome(status=SolveStatus.OPTIMAL, objective=10.0, solution={"x": 10, "y": 0})]
    )

    assert response.to_payload() == {
        "solutions": [
            {"status": 5, "objective": 10.0, "solution": {"x": 10, "y": 0}, "error": None}
        ]
    }
