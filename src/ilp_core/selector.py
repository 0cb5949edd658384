from __future__ import annotations

"""Resolve which engine adapter serves the process.

The choice is made once, at startup, from ``SolverSettings``; the resulting
adapter is handed to whatever serves requests. Nothing here caches the
instance, so there is no way to switch engines behind a running server.
"""

import enum
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .backends import GlpkBackend, GurobiBackend, HexalyBackend, HighsBackend
from .backends import glpk, gurobi, hexaly, highs
from .contract import SolverBackend

if TYPE_CHECKING:  # pragma: no cover
    from .config import SolverSettings

LOGGER = logging.getLogger("ilp_core.selector")


class BackendKind(str, enum.Enum):
    GLPK = "glpk"
    HIGHS = "highs"
    GUROBI = "gurobi"
    HEXALY = "hexaly"

    @classmethod
    def parse(cls, raw: Any) -> "BackendKind":
        if isinstance(raw, cls):
            return raw
        text = str(raw or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        choices = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown solver backend {raw!r}; expected one of: {choices}")


_FACTORIES: Dict[BackendKind, Callable[..., SolverBackend]] = {
    BackendKind.GLPK: GlpkBackend,
    BackendKind.HIGHS: HighsBackend,
    BackendKind.GUROBI: GurobiBackend,
    BackendKind.HEXALY: HexalyBackend,
}

_ENGINE_LOADED: Dict[BackendKind, Callable[[], bool]] = {
    BackendKind.GLPK: lambda: glpk.glp is not None,
    BackendKind.HIGHS: lambda: highs.highspy is not None,
    BackendKind.GUROBI: lambda: gurobi.gp is not None,
    BackendKind.HEXALY: lambda: hexaly.hexaly_optimizer is not None,
}


def create_backend(
    kind: "BackendKind | str", *, time_limit: Optional[float] = None, threads: int = 0
) -> SolverBackend:
    """Instantiate the adapter for ``kind``.

    Raises ``MissingDependencyError`` when the engine bindings are absent.
    """
    resolved = BackendKind.parse(kind)
    return _FACTORIES[resolved](time_limit=time_limit, threads=threads)


def select_backend(settings: "SolverSettings") -> SolverBackend:
    backend = create_backend(
        settings.backend,
        time_limit=settings.time_limit,
        threads=settings.threads,
    )
    LOGGER.info(
        "Using %s backend (presolve=%s, time_limit=%s)",
        backend.name,
        "on" if settings.use_presolve else "off",
        settings.time_limit if settings.time_limit is not None else "unlimited",
    )
    return backend


def available_backends() -> List[BackendKind]:
    """Kinds whose engine bindings imported successfully."""
    return [kind for kind in BackendKind if _ENGINE_LOADED[kind]()]


__all__ = ["BackendKind", "available_backends", "create_backend", "select_backend"]
