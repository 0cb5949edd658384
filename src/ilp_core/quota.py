"""Concurrency guard shared by the MCP and LangChain surfaces."""

from __future__ import annotations

import contextlib
import threading
from typing import Iterator

from .errors import ILPSolveError


class SolverUnavailableError(ILPSolveError):
    """Raised when all solver slots are already in use."""


class SolverQuota:
    """Bounded semaphore limiting how many requests solve at once.

    ``claim`` never blocks: a caller that finds every slot taken gets
    ``SolverUnavailableError`` and is expected to retry later.
    """

    def __init__(self, max_parallel: int) -> None:
        if max_parallel <= 0:
            raise ValueError("max_parallel must be positive")
        self.max_parallel = max_parallel
        self._semaphore = threading.BoundedSemaphore(max_parallel)

    @contextlib.contextmanager
    def claim(self) -> Iterator[None]:
        if not self._semaphore.acquire(blocking=False):
            raise SolverUnavailableError(
                "Solver resource temporarily unavailable. Try again in a few seconds."
            )
        try:
            yield
        finally:
            self._semaphore.release()


__all__ = ["SolverQuota", "SolverUnavailableError"]
