from __future__ import annotations

"""Presolve-aware reconciliation of engine-reported variable values."""

import logging
import math
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence

from .errors import PresolveReconciliationError
from .model import Variable

LOGGER = logging.getLogger("ilp_core.reconcile")

FixedValueLookup = Callable[[Variable], Optional[float]]


def reconcile_solution(
    variables: Sequence[Variable],
    reported: Mapping[str, Optional[float]],
    fixed_value: Optional[FixedValueLookup] = None,
) -> Dict[str, int]:
    """Return a value for every variable, in variable order.

    Values the engine reported are rounded to the nearest integer. A variable
    the engine left out (eliminated or fixed by presolve, or simply no
    solution) takes its engine-exposed fixed value when ``fixed_value`` knows
    one, otherwise its declared lower bound. Fixed variables always resolve to
    their bound.
    """
    solution: Dict[str, int] = {}
    fallbacks = 0
    for var in variables:
        if var.is_fixed:
            solution[var.id] = var.lower
            continue
        value = _finite(reported.get(var.id))
        if value is None:
            value = _resolve_eliminated(var, fixed_value)
            fallbacks += 1
        solution[var.id] = _clamp(int(round(value)), var)
    if fallbacks:
        LOGGER.debug("Reconciled %s variable(s) missing from the engine result", fallbacks)
    return solution


def objective_value(
    coefficients: Iterable[float],
    variables: Sequence[Variable],
    solution: Mapping[str, int],
) -> float:
    """Evaluate dense objective ``coefficients`` on a reconciled solution."""
    total = 0.0
    for coeff, var in zip(coefficients, variables):
        if coeff:
            total += coeff * solution[var.id]
    return total


def _resolve_eliminated(var: Variable, fixed_value: Optional[FixedValueLookup]) -> float:
    if fixed_value is None:
        return float(var.lower)
    try:
        value = _finite(fixed_value(var))
        if value is None:
            raise PresolveReconciliationError(f"no fixed value exposed for {var.id!r}")
    except PresolveReconciliationError as exc:
        LOGGER.debug("%s; falling back to lower bound %s", exc, var.lower)
        return float(var.lower)
    return value


def _finite(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _clamp(value: int, var: Variable) -> int:
    return max(var.lower, min(var.upper, value))


__all__ = ["FixedValueLookup", "objective_value", "reconcile_solution"]
