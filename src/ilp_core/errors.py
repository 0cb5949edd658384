"""Exception hierarchy shared by the model, the backends and the surfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence


class ILPSolveError(RuntimeError):
    """Base class for every error raised by ilp_core."""


@dataclass
class ValidationIssue:
    """Represents a structural problem detected in a request payload."""

    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(ILPSolveError, ValueError):
    """Raised when a request is malformed; no backend is ever invoked."""

    def __init__(self, issues: Sequence[ValidationIssue]) -> None:
        self.issues: List[ValidationIssue] = list(issues)
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in self.issues[:5])
        if len(self.issues) > 5:
            summary += f" (+{len(self.issues) - 5} more)"
        super().__init__(summary or "invalid request")


class ConfigError(ILPSolveError, ValueError):
    """Raised at startup when the solver configuration cannot be loaded or validated."""


class EngineInitError(ILPSolveError):
    """Raised when a solver environment, license or binding cannot be set up."""


class MissingDependencyError(EngineInitError):
    """Raised when optional solver dependencies are unavailable."""


class SolveFailure(ILPSolveError):
    """Raised inside an adapter when one objective cannot be solved.

    Adapters never let this escape: it is converted into the ``error`` channel
    of the affected outcome.
    """

    def __init__(self, message: str, status: "int | None" = None) -> None:
        super().__init__(message)
        self.status = status


class PresolveReconciliationError(ILPSolveError):
    """Raised when an eliminated variable has no engine-exposed value."""


__all__ = [
    "ConfigError",
    "EngineInitError",
    "ILPSolveError",
    "MissingDependencyError",
    "PresolveReconciliationError",
    "SolveFailure",
    "ValidationError",
    "ValidationIssue",
]
