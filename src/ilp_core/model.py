from __future__ import annotations

"""Canonical, engine-agnostic representation of an integer polyhedron.

Requests arrive as plain mappings (already deserialized by the transport) and
are turned into immutable ``Polyhedron`` / ``SolveRequest`` values here. Every
structural problem is collected before anything is raised, so callers get the
full list of issues in one round trip.
"""

import enum
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import ValidationError, ValidationIssue
from .status import SolveStatus

LE = "<="
GE = ">="
_SENSE_ALIASES = {
    "<=": LE,
    "le": LE,
    "leq": LE,
    ">=": GE,
    "ge": GE,
    "geq": GE,
}


class Direction(str, enum.Enum):
    MAXIMIZE = "maximize"
    MINIMIZE = "minimize"

    @classmethod
    def parse(cls, raw: Any) -> "Direction":
        if isinstance(raw, cls):
            return raw
        text = str(raw or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"direction must be 'maximize' or 'minimize', got {raw!r}")


@dataclass(frozen=True)
class Shape:
    nrows: int
    ncols: int


@dataclass(frozen=True)
class SparseMatrix:
    """Coordinate-format matrix; duplicate (row, col) pairs are kept as-is."""

    rows: Tuple[int, ...]
    cols: Tuple[int, ...]
    vals: Tuple[float, ...]
    shape: Shape

    @property
    def nnz(self) -> int:
        return len(self.vals)

    def triplets(self) -> Iterable[Tuple[int, int, float]]:
        return zip(self.rows, self.cols, self.vals)


@dataclass(frozen=True)
class Variable:
    id: str
    lower: int
    upper: int

    @property
    def bound(self) -> Tuple[int, int]:
        return (self.lower, self.upper)

    @property
    def is_fixed(self) -> bool:
        return self.lower == self.upper

    @property
    def is_binary(self) -> bool:
        return self.lower == 0 and self.upper == 1


@dataclass(frozen=True)
class Polyhedron:
    """Feasible region ``A x <= b`` together with per-variable bounds."""

    A: SparseMatrix
    b: Tuple[float, ...]
    variables: Tuple[Variable, ...]

    @property
    def nrows(self) -> int:
        return self.A.shape.nrows

    @property
    def ncols(self) -> int:
        return self.A.shape.ncols

    @property
    def variable_ids(self) -> List[str]:
        return [var.id for var in self.variables]

    def row_entries(self) -> List[List[Tuple[int, float]]]:
        """Group the nonzeros per row as ``(col, val)`` pairs, in input order."""
        grouped: List[List[Tuple[int, float]]] = [[] for _ in range(self.nrows)]
        for row, col, val in self.A.triplets():
            grouped[row].append((col, val))
        return grouped

    def merged_entries(self) -> List[Tuple[int, int, float]]:
        """Sum repeated ``(row, col)`` triplets and drop entries that cancel to zero.

        Order follows the first appearance of each position. The stored matrix
        is left untouched.
        """
        merged: Dict[Tuple[int, int], float] = {}
        for row, col, val in self.A.triplets():
            merged[(row, col)] = merged.get((row, col), 0.0) + val
        return [(row, col, val) for (row, col), val in merged.items() if val != 0.0]

    def column_compressed(self, merge: bool = False) -> Tuple[List[int], List[int], List[float]]:
        """Return ``(start, index, value)`` arrays in compressed-column layout.

        With ``merge`` set, repeated positions are summed first; engines that
        load CSC matrices directly reject duplicates.
        """
        entries = self.merged_entries() if merge else list(self.A.triplets())
        counts = [0] * (self.ncols + 1)
        for _, col, _ in entries:
            counts[col + 1] += 1
        for col in range(self.ncols):
            counts[col + 1] += counts[col]
        start = list(counts)
        cursor = counts[:-1]
        index = [0] * len(entries)
        value = [0.0] * len(entries)
        for row, col, val in entries:
            slot = cursor[col]
            index[slot] = row
            value[slot] = val
            cursor[col] = slot + 1
        return start, index, value


Objective = Mapping[str, float]


@dataclass(frozen=True)
class SolveRequest:
    polyhedron: Polyhedron
    objectives: Tuple[Dict[str, float], ...]
    direction: Direction
    use_presolve: Optional[bool] = None


@dataclass
class Outcome:
    status: SolveStatus
    objective: Optional[float] = None
    solution: Dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None

    def to_payload(self) -> dict:
        return {
            "status": int(self.status),
            "objective": self.objective,
            "solution": dict(self.solution),
            "error": self.error,
        }


@dataclass
class SolveResponse:
    solutions: List[Outcome]

    def to_payload(self) -> dict:
        return {"solutions": [outcome.to_payload() for outcome in self.solutions]}


def align_objective(polyhedron: Polyhedron, objective: Objective) -> List[float]:
    """Dense per-column coefficients; ids not among the variables are dropped."""
    return [float(objective.get(var.id, 0.0)) for var in polyhedron.variables]


def build_polyhedron(payload: Mapping[str, Any]) -> Polyhedron:
    """Validate a deserialized polyhedron and normalize every row to ``<=``."""
    issues: List[ValidationIssue] = []
    polyhedron = _build_polyhedron(payload, issues)
    if issues or polyhedron is None:
        raise ValidationError(issues)
    return polyhedron


def validate_polyhedron(payload: Mapping[str, Any]) -> List[ValidationIssue]:
    """Return every structural issue in ``payload`` without raising."""
    issues: List[ValidationIssue] = []
    _build_polyhedron(payload, issues)
    return issues


def parse_request(
    payload: Mapping[str, Any], *, use_presolve: Optional[bool] = None
) -> SolveRequest:
    """Build a ``SolveRequest`` from ``{polyhedron, objectives, direction}``."""
    if not isinstance(payload, Mapping):
        raise ValidationError([ValidationIssue("request", "must be an object")])

    issues: List[ValidationIssue] = []
    raw_polyhedron = payload.get("polyhedron")
    polyhedron: Optional[Polyhedron] = None
    if not isinstance(raw_polyhedron, Mapping):
        issues.append(ValidationIssue("polyhedron", "is required and must be an object"))
    else:
        polyhedron = _build_polyhedron(raw_polyhedron, issues)

    objectives = _parse_objectives(payload.get("objectives"), issues)

    direction: Optional[Direction] = None
    try:
        direction = Direction.parse(payload.get("direction"))
    except ValueError as exc:
        issues.append(ValidationIssue("direction", str(exc)))

    if "use_presolve" in payload and payload["use_presolve"] is not None:
        if not isinstance(payload["use_presolve"], bool):
            issues.append(ValidationIssue("use_presolve", "must be a boolean"))
        else:
            use_presolve = payload["use_presolve"]

    if issues or polyhedron is None or direction is None:
        raise ValidationError(issues)
    return SolveRequest(
        polyhedron=polyhedron,
        objectives=tuple(objectives),
        direction=direction,
        use_presolve=use_presolve,
    )


def _build_polyhedron(
    payload: Mapping[str, Any], issues: List[ValidationIssue]
) -> Optional[Polyhedron]:
    start = len(issues)
    if not isinstance(payload, Mapping):
        issues.append(ValidationIssue("polyhedron", "must be an object"))
        return None
    raw_matrix = payload.get("A")
    if not isinstance(raw_matrix, Mapping):
        issues.append(ValidationIssue("polyhedron.A", "is required and must be an object"))
        return None

    rows = _int_sequence(raw_matrix.get("rows"), "polyhedron.A.rows", issues)
    cols = _int_sequence(raw_matrix.get("cols"), "polyhedron.A.cols", issues)
    vals = _number_sequence(raw_matrix.get("vals"), "polyhedron.A.vals", issues)
    shape = _parse_shape(raw_matrix.get("shape"), issues)
    b = _number_sequence(payload.get("b"), "polyhedron.b", issues)
    variables = _parse_variables(payload.get("variables"), issues)
    raw_senses = payload.get("senses")

    if len(issues) > start:
        return None

    if not (len(rows) == len(cols) == len(vals)):
        issues.append(
            ValidationIssue(
                "polyhedron.A",
                "rows, cols and vals must have the same length, got "
                f"({len(rows)},{len(cols)},{len(vals)})",
            )
        )
    for position, row in enumerate(rows):
        if row < 0 or row >= shape.nrows:
            issues.append(
                ValidationIssue(
                    f"polyhedron.A.rows[{position}]",
                    f"row index {row} outside shape.nrows={shape.nrows}",
                )
            )
    for position, col in enumerate(cols):
        if col < 0 or col >= shape.ncols:
            issues.append(
                ValidationIssue(
                    f"polyhedron.A.cols[{position}]",
                    f"column index {col} outside shape.ncols={shape.ncols}",
                )
            )
    if len(b) != shape.nrows:
        issues.append(
            ValidationIssue(
                "polyhedron.b",
                f"length {len(b)} does not match shape.nrows={shape.nrows}",
            )
        )
    if len(variables) != shape.ncols:
        issues.append(
            ValidationIssue(
                "polyhedron.variables",
                f"length {len(variables)} does not match shape.ncols={shape.ncols}",
            )
        )
    senses = _parse_senses(raw_senses, shape.nrows, issues)

    if len(issues) > start:
        return None

    flipped = {row for row, sense in enumerate(senses) if sense == GE}
    if flipped:
        vals = [-val if row in flipped else val for row, val in zip(rows, vals)]
        b = [-rhs if row in flipped else rhs for row, rhs in enumerate(b)]

    return Polyhedron(
        A=SparseMatrix(rows=tuple(rows), cols=tuple(cols), vals=tuple(vals), shape=shape),
        b=tuple(b),
        variables=tuple(variables),
    )


def _parse_shape(raw: Any, issues: List[ValidationIssue]) -> Shape:
    if not isinstance(raw, Mapping):
        issues.append(ValidationIssue("polyhedron.A.shape", "is required and must be an object"))
        return Shape(0, 0)
    dims = []
    for key in ("nrows", "ncols"):
        value = raw.get(key)
        if not _is_int(value) or value < 0:
            issues.append(
                ValidationIssue(f"polyhedron.A.shape.{key}", "must be a non-negative integer")
            )
            dims.append(0)
        else:
            dims.append(int(value))
    return Shape(*dims)


def _parse_variables(raw: Any, issues: List[ValidationIssue]) -> List[Variable]:
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        issues.append(ValidationIssue("polyhedron.variables", "must be a list"))
        return []
    variables: List[Variable] = []
    seen: set[str] = set()
    for idx, item in enumerate(raw):
        where = f"polyhedron.variables[{idx}]"
        if not isinstance(item, Mapping):
            issues.append(ValidationIssue(where, "must be an object with id and bound"))
            continue
        var_id = item.get("id")
        if not isinstance(var_id, str) or not var_id:
            issues.append(ValidationIssue(f"{where}.id", "must be a non-empty string"))
            continue
        if var_id in seen:
            issues.append(ValidationIssue(f"{where}.id", f"duplicate variable id {var_id!r}"))
            continue
        seen.add(var_id)
        bound = item.get("bound")
        if (
            not isinstance(bound, Sequence)
            or isinstance(bound, (str, bytes))
            or len(bound) != 2
            or not all(_is_int(edge) for edge in bound)
        ):
            issues.append(
                ValidationIssue(f"{where}.bound", "must be a [lower, upper] pair of integers")
            )
            continue
        lower, upper = int(bound[0]), int(bound[1])
        if lower > upper:
            issues.append(
                ValidationIssue(
                    f"{where}.bound",
                    f"lower bound {lower} exceeds upper bound {upper} for {var_id!r}",
                )
            )
            continue
        variables.append(Variable(id=var_id, lower=lower, upper=upper))
    return variables


def _parse_senses(raw: Any, nrows: int, issues: List[ValidationIssue]) -> List[str]:
    if raw is None:
        return [LE] * nrows
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        issues.append(ValidationIssue("polyhedron.senses", "must be a list of '<=' or '>='"))
        return []
    if len(raw) != nrows:
        issues.append(
            ValidationIssue(
                "polyhedron.senses",
                f"length {len(raw)} does not match shape.nrows={nrows}",
            )
        )
        return []
    senses: List[str] = []
    for idx, item in enumerate(raw):
        sense = _SENSE_ALIASES.get(str(item).strip().lower())
        if sense is None:
            issues.append(
                ValidationIssue(f"polyhedron.senses[{idx}]", f"unknown sense {item!r}")
            )
            continue
        senses.append(sense)
    return senses


def _parse_objectives(raw: Any, issues: List[ValidationIssue]) -> List[Dict[str, float]]:
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        issues.append(ValidationIssue("objectives", "must be a list of objects"))
        return []
    objectives: List[Dict[str, float]] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, Mapping):
            issues.append(ValidationIssue(f"objectives[{idx}]", "must be an object"))
            continue
        coefficients: Dict[str, float] = {}
        for key, value in item.items():
            if not _is_number(value):
                issues.append(
                    ValidationIssue(
                        f"objectives[{idx}].{key}", "coefficient must be a finite number"
                    )
                )
                continue
            coefficients[str(key)] = float(value)
        objectives.append(coefficients)
    return objectives


def _int_sequence(raw: Any, where: str, issues: List[ValidationIssue]) -> List[int]:
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        issues.append(ValidationIssue(where, "must be a list of integers"))
        return []
    if not all(_is_int(item) for item in raw):
        issues.append(ValidationIssue(where, "must contain only integers"))
        return []
    return [int(item) for item in raw]


def _number_sequence(raw: Any, where: str, issues: List[ValidationIssue]) -> List[float]:
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        issues.append(ValidationIssue(where, "must be a list of numbers"))
        return []
    if not all(_is_number(item) for item in raw):
        issues.append(ValidationIssue(where, "must contain only finite numbers"))
        return []
    return [float(item) for item in raw]


def _is_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


__all__ = [
    "Direction",
    "GE",
    "LE",
    "Objective",
    "Outcome",
    "Polyhedron",
    "Shape",
    "SolveRequest",
    "SolveResponse",
    "SparseMatrix",
    "Variable",
    "align_objective",
    "build_polyhedron",
    "parse_request",
    "validate_polyhedron",
]
