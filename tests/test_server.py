from __future__ import annotations

import asyncio

from conftest import StubBackend

from ilp_core.config import SolverSettings
from ilp_core.status import SolveStatus
from ilp_mcp.server import ILPSolveHandler, build_fastmcp_server, run


def test_fastmcp_server_exposes_solve_validate_and_health(stub_backend) -> None:
    handler = ILPSolveHandler(stub_backend)
    server = build_fastmcp_server(handler)
    tools = asyncio.run(server.get_tools())
    assert sorted(tools.keys()) == ["health", "solve_ilp", "validate_polyhedron"]


def test_solve_returns_structured_payload(sum_le_ten, stub_backend) -> None:
    handler = ILPSolveHandler(stub_backend)

    result = handler.solve(sum_le_ten, [{"x": 1}, {"y": 1, "ghost": 5}], "maximize")

    assert stub_backend.calls, "solve should call into the backend"
    solutions = result.structured_content["solutions"]
    assert [item["status"] for item in solutions] == [int(SolveStatus.OPTIMAL)] * 2
    assert [item["objective"] for item in solutions] == [10.0, 10.0]
    assert solutions[0]["solution"] == {"x": 10, "y": 10}
    assert "Optimal" in getattr(result.content[0], "text", "")


def test_solve_short_circuits_when_request_invalid(sum_le_ten) -> None:
    class FailingBackend(StubBackend):
        def solve(self, *args, **kwargs):  # type: ignore[override]
            raise AssertionError("backend should not be invoked when validation fails")

    sum_le_ten["b"] = []
    handler = ILPSolveHandler(FailingBackend())

    result = handler.solve(sum_le_ten, [{"x": 1}], "maximize")

    assert result.structured_content["error"] == "Request validation failed"
    assert result.structured_content["issues"][0]["field"] == "polyhedron.b"


def test_solve_reports_quota_pressure(sum_le_ten, stub_backend) -> None:
    handler = ILPSolveHandler(stub_backend, settings=SolverSettings(max_parallel_solvers=1))

    acquired = handler._solver_quota._semaphore.acquire(blocking=False)  # type: ignore[attr-defined]
    assert acquired
    try:
        result = handler.solve(sum_le_ten, [{"x": 1}], "maximize")
    finally:
        handler._solver_quota._semaphore.release()  # type: ignore[attr-defined]

    assert result.structured_content["error"]
    assert "temporarily unavailable" in getattr(result.content[0], "text", "")
    assert stub_backend.calls == []


def test_validate_polyhedron_detects_issues(sum_le_ten, stub_backend) -> None:
    sum_le_ten["A"]["cols"] = [0, 5]
    handler = ILPSolveHandler(stub_backend)

    result = handler.validate_polyhedron(sum_le_ten)

    assert result.structured_content["valid"] is False
    assert result.structured_content["issues"]


def test_validate_polyhedron_accepts_valid_input(sum_le_ten, stub_backend) -> None:
    handler = ILPSolveHandler(stub_backend)

    result = handler.validate_polyhedron(sum_le_ten)

    assert result.structured_content == {"valid": True, "issues": []}


def test_health_reports_active_backend(stub_backend) -> None:
    handler = ILPSolveHandler(stub_backend, settings=SolverSettings(time_limit=30))

    result = handler.health()

    assert result.structured_content["backend"] == "Stub"
    assert result.structured_content["time_limit"] == 30.0
    assert result.structured_content["status"] == "ok"


def test_run_exits_on_bad_config(tmp_path) -> None:
    assert run(["--config", str(tmp_path / "missing.yaml")]) == 1
