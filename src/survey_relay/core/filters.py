from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple, Union


class Operator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    GTE = "gte"
    LTE = "lte"

    @classmethod
    def parse(cls, raw: Any) -> "Operator":
        """Unknown operators behave like `equals`."""
        try:
            return cls(raw)
        except ValueError:
            return cls.EQUALS


@dataclass(frozen=True)
class Literal:
    """Bare filter value: the cell must be strictly equal to it."""
    value: Any


@dataclass(frozen=True)
class Predicate:
    operator: Operator
    value: Any


Filter = Union[Literal, Predicate]


class _Missing:
    """Marker for a key absent from a response, distinct from an explicit null."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


# Leading decimal literal, e.g. "42", "-3.5", ".5e2", "7 - Very satisfied"
_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_number(value: Any) -> float:
    """
    Lenient numeric reading of a survey answer.

    Numbers pass through; strings are read up to the end of their leading
    numeric literal. Anything else (None, booleans, text) gives NaN, so
    comparisons against it are always false.
    """
    if isinstance(value, (bool, _Missing)) or value is None:
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    m = _LEADING_NUMBER_RE.match(str(value))
    if not m:
        return math.nan
    try:
        return float(m.group(1))
    except (ValueError, OverflowError):
        return math.nan


def display_value(value: Any) -> str:
    """Text form of a cell, as used for substring matching and value counts."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def strict_equals(cell: Any, target: Any) -> bool:
    """
    Equality without cross-type coercion.

    Numbers compare by value (1 == 1.0) but never equal their text form,
    booleans only equal booleans, and containers never match anything.
    """
    if isinstance(target, (dict, list)) or isinstance(cell, (dict, list)):
        return False
    cell_is_num = isinstance(cell, (int, float)) and not isinstance(cell, bool)
    target_is_num = isinstance(target, (int, float)) and not isinstance(target, bool)
    if cell_is_num or target_is_num:
        return cell_is_num and target_is_num and cell == target
    if type(cell) is not type(target):
        return False
    return cell == target


def parse_filter(raw: Any) -> Filter:
    if isinstance(raw, Mapping) and raw.get("operator"):
        return Predicate(operator=Operator.parse(raw["operator"]), value=raw.get("value"))
    return Literal(value=raw)


def parse_filters(raw: Any) -> List[Tuple[str, Filter]]:
    """
    Turn the request's `filters` object into (column, filter) pairs.

    None or an empty object means no filtering.
    """
    if raw is None:
        return []
    if not isinstance(raw, Mapping):
        raise ValueError(f"filters must be an object, got {type(raw).__name__}")
    return [(str(col), parse_filter(val)) for col, val in raw.items()]


def matches(row: Mapping[str, Any], column: str, flt: Filter) -> bool:
    cell = row.get(column, MISSING)

    if isinstance(flt, Literal):
        return strict_equals(cell, flt.value)

    op = flt.operator
    if op is Operator.CONTAINS:
        if not cell:
            return False
        return display_value(flt.value).lower() in display_value(cell).lower()
    if op is Operator.GTE:
        return parse_number(cell) >= parse_number(flt.value)
    if op is Operator.LTE:
        return parse_number(cell) <= parse_number(flt.value)
    return strict_equals(cell, flt.value)


def matches_all(row: Mapping[str, Any], filters: List[Tuple[str, Filter]]) -> bool:
    return all(matches(row, col, flt) for col, flt in filters)


def describe_filters(filters: List[Tuple[str, Filter]]) -> Dict[str, str]:
    """Compact form for log lines."""
    out: Dict[str, str] = {}
    for col, flt in filters:
        if isinstance(flt, Literal):
            out[col] = repr(flt.value)
        else:
            out[col] = f"{flt.operator.value} {flt.value!r}"
    return out


def format_percentage(count: int, total: int) -> str:
    """count/total as a percentage with one decimal, ties rounded up (6.25 -> "6.3")."""
    pct = Decimal(repr(float(count) / total * 100))
    return str(pct.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
