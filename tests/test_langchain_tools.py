"""Tests for LangChain tools."""

from __future__ import annotations

from ilp_core.config import SolverSettings
from langchain_ilp.tools import create_solve_tool, create_validate_polyhedron_tool


def test_create_validate_polyhedron_tool() -> None:
    tool = create_validate_polyhedron_tool()
    assert tool.name == "validate_polyhedron"


def test_validate_polyhedron_tool_accepts_valid_input(sum_le_ten) -> None:
    tool = create_validate_polyhedron_tool()
    result = tool.invoke({"polyhedron": sum_le_ten})

    assert result["valid"] is True
    assert result["issues"] == []


def test_validate_polyhedron_tool_detects_issues(sum_le_ten) -> None:
    sum_le_ten["variables"][0]["bound"] = [5, 1]
    tool = create_validate_polyhedron_tool()
    result = tool.invoke({"polyhedron": sum_le_ten})

    assert result["valid"] is False
    assert len(result["issues"]) > 0


def test_create_solve_tool(stub_backend) -> None:
    tool = create_solve_tool(backend=stub_backend)
    assert tool.name == "solve_ilp"


def test_solve_tool_returns_one_outcome_per_objective(sum_le_ten, stub_backend) -> None:
    tool = create_solve_tool(backend=stub_backend, settings=SolverSettings(use_presolve=False))
    result = tool.invoke(
        {"polyhedron": sum_le_ten, "objectives": [{"x": 1}, {}, {"y": -1}], "direction": "minimize"}
    )

    assert [item["objective"] for item in result["solutions"]] == [10.0, 0.0, -10.0]
    assert stub_backend.calls[0]["use_presolve"] is False


def test_solve_tool_rejects_invalid_request(sum_le_ten, stub_backend) -> None:
    tool = create_solve_tool(backend=stub_backend)
    result = tool.invoke({"polyhedron": sum_le_ten, "objectives": [{"x": 1}], "direction": "upwards"})

    assert result["error"] == "Request validation failed"
    assert result["issues"][0]["field"] == "direction"
    assert stub_backend.calls == []
