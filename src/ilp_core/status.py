from __future__ import annotations

"""Canonical outcome vocabulary shared by every solver backend."""

import enum
from typing import Any, Dict, Hashable, Mapping


class SolveStatus(enum.IntEnum):
    UNDEFINED = 1
    FEASIBLE = 2
    INFEASIBLE = 3
    NO_FEASIBLE = 4
    OPTIMAL = 5
    UNBOUNDED = 6
    SIMPLEX_FAILED = 7
    MIP_FAILED = 8
    EMPTY_SPACE = 9

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def has_solution(self) -> bool:
        return self in (SolveStatus.OPTIMAL, SolveStatus.FEASIBLE)

    @classmethod
    def from_label(cls, label: str) -> "SolveStatus":
        key = label.replace("_", "").lower()
        for status, name in _LABELS.items():
            if name.lower() == key:
                return status
        raise ValueError(f"Unknown status label: {label!r}")


_LABELS: Dict[SolveStatus, str] = {
    SolveStatus.UNDEFINED: "Undefined",
    SolveStatus.FEASIBLE: "Feasible",
    SolveStatus.INFEASIBLE: "Infeasible",
    SolveStatus.NO_FEASIBLE: "NoFeasible",
    SolveStatus.OPTIMAL: "Optimal",
    SolveStatus.UNBOUNDED: "Unbounded",
    SolveStatus.SIMPLEX_FAILED: "SimplexFailed",
    SolveStatus.MIP_FAILED: "MIPFailed",
    SolveStatus.EMPTY_SPACE: "EmptySpace",
}


class StatusMap:
    """Total mapping from an engine's native result codes to SolveStatus.

    Codes missing from ``table`` resolve to ``UNDEFINED``; nothing falls through
    to ``OPTIMAL``. ``failure`` is the status an adapter reports when the
    engine call itself fails, fixed per engine.
    """

    def __init__(
        self,
        engine: str,
        table: Mapping[Hashable, SolveStatus],
        *,
        failure: SolveStatus,
    ) -> None:
        if failure not in (SolveStatus.SIMPLEX_FAILED, SolveStatus.MIP_FAILED):
            raise ValueError("failure status must be SIMPLEX_FAILED or MIP_FAILED")
        self.engine = engine
        self.failure = failure
        self._table: Dict[Hashable, SolveStatus] = dict(table)

    def __call__(self, code: Any) -> SolveStatus:
        return self.lookup(code)

    def lookup(self, code: Any) -> SolveStatus:
        try:
            return self._table.get(code, SolveStatus.UNDEFINED)
        except TypeError:
            return SolveStatus.UNDEFINED

    def describe(self, code: Any) -> str:
        name = getattr(code, "name", None) or str(code)
        return f"{self.engine} status {name}"

    def __contains__(self, code: Any) -> bool:
        try:
            return code in self._table
        except TypeError:
            return False

    def __len__(self) -> int:
        return len(self._table)


__all__ = ["SolveStatus", "StatusMap"]
