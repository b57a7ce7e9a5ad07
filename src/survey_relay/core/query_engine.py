from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from survey_relay.config import DEFAULT_QUERY_LIMIT, MEMBERSHIP_CATEGORY_COL
from survey_relay.core.data_loader import SurveyDataset
from survey_relay.core.filters import (
    describe_filters,
    display_value,
    format_percentage,
    matches_all,
    parse_filters,
    parse_number,
)

logger = logging.getLogger(__name__)

QUERY_TYPES = ("filter", "summary", "stats", "sample")

TOP_VALUES_LIMIT = 5

# A column is reported as numeric when more than this share of its
# non-empty answers read as finite numbers.
NUMERIC_SHARE_THRESHOLD = 0.5

# Group labels used by `sample` when the membership category is absent
# from a response, or present but null
MISSING_GROUP_LABEL = "undefined"
NULL_GROUP_LABEL = "null"


class QueryEngineError(Exception):
    """Custom exception for query engine failures."""


class InvalidQueryError(QueryEngineError):
    """Raised for an unrecognized queryType."""


@dataclass
class QueryRequest:
    """
    Parameters of one survey query, as sent by the client or the model.

    filters:
      {column: literal}                       -> strict equality
      {column: {"operator": op, "value": v}}  -> equals / contains / gte / lte
    columns:
      projection for `filter`, target columns for `summary` and `stats`
    """
    query_type: str
    filters: Optional[Dict[str, Any]] = None
    columns: Optional[List[str]] = None
    limit: int = DEFAULT_QUERY_LIMIT

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "QueryRequest":
        if not isinstance(payload, Mapping):
            raise QueryEngineError("Query body must be a JSON object.")
        limit = payload.get("limit")
        return cls(
            query_type=payload.get("queryType"),
            filters=payload.get("filters"),
            columns=payload.get("columns"),
            limit=DEFAULT_QUERY_LIMIT if limit is None else limit,
        )


@dataclass
class ValueCount:
    value: str
    count: int
    percentage: str

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "count": self.count, "percentage": self.percentage}


@dataclass
class ColumnStats:
    total_responses: int
    unique_values: int
    top_values: List[ValueCount] = field(default_factory=list)

    # Only populated when the column is mostly numeric
    is_numeric: bool = False
    average: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "totalResponses": self.total_responses,
            "uniqueValues": self.unique_values,
            "topValues": [v.to_dict() for v in self.top_values],
        }
        if self.is_numeric:
            out["isNumeric"] = True
            out["average"] = self.average
            out["min"] = self.min
            out["max"] = self.max
        return out


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate_limit(limit: Any) -> int:
    if isinstance(limit, bool):
        raise QueryEngineError(f"limit must be a non-negative integer, got {limit!r}")
    if isinstance(limit, float) and limit.is_integer():
        limit = int(limit)
    if not isinstance(limit, int) or limit < 0:
        raise QueryEngineError(f"limit must be a non-negative integer, got {limit!r}")
    return limit


def _validate_columns(columns: Any, required: bool = False) -> List[str]:
    if columns is None:
        if required:
            raise QueryEngineError("columns must be provided for this query type.")
        return []
    if not isinstance(columns, list):
        raise QueryEngineError(f"columns must be a list of column names, got {type(columns).__name__}")
    return [str(c) for c in columns]


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


# ---------------------------------------------------------------------------
# Query types
# ---------------------------------------------------------------------------

def filter_responses(
    dataset: SurveyDataset,
    filters: Optional[Dict[str, Any]],
    columns: Optional[List[str]],
    limit: int,
) -> Dict[str, Any]:
    try:
        parsed = parse_filters(filters)
    except ValueError as exc:
        raise QueryEngineError(str(exc)) from exc

    matched = [r for r in dataset.responses if matches_all(r, parsed)]
    logger.info("Filter %s matched %s of %s responses", describe_filters(parsed), len(matched), len(dataset))

    cols = _validate_columns(columns)
    if cols:
        rows = [{c: r[c] for c in cols if c in r} for r in matched]
    else:
        rows = [dict(r) for r in matched]

    return {
        "data": rows[:limit],
        "totalCount": len(rows),
        "limit": limit,
    }


def _top_values(values: pd.Series, top_n: int) -> List[ValueCount]:
    # value_counts(sort=False) keeps first-seen order; the stable sort then
    # leaves ties in that order.
    counts = (
        values.map(display_value)
        .value_counts(sort=False)
        .sort_values(ascending=False, kind="stable")
        .head(top_n)
    )
    total = len(values)
    return [
        ValueCount(value=str(v), count=int(n), percentage=format_percentage(int(n), total))
        for v, n in counts.items()
    ]


def compute_column_stats(dataset: SurveyDataset, column: str, top_n: int = TOP_VALUES_LIMIT) -> ColumnStats:
    """
    Frequency and (when applicable) numeric statistics for one column.

    Missing, null and empty-string answers are excluded everywhere. Numeric
    stats are computed over the answers that read as finite numbers; the
    remaining answers still count towards the frequency table.
    """
    raw = [v for v in dataset.column_values(column) if not _is_empty(v)]
    values = pd.Series(raw, dtype=object)

    stats = ColumnStats(
        total_responses=len(values),
        unique_values=int(values.nunique()),
        top_values=_top_values(values, top_n) if len(values) else [],
    )

    numeric = values.map(parse_number).astype(float).dropna()
    numeric = numeric[numeric.abs() != math.inf]
    if len(values) and len(numeric) > len(values) * NUMERIC_SHARE_THRESHOLD:
        stats.is_numeric = True
        stats.average = float(numeric.mean())
        stats.min = float(numeric.min())
        stats.max = float(numeric.max())

    return stats


def column_stats(dataset: SurveyDataset, columns: Optional[List[str]]) -> Dict[str, Any]:
    cols = _validate_columns(columns, required=True)
    return {c: compute_column_stats(dataset, c).to_dict() for c in cols}


def summarize(dataset: SurveyDataset, columns: Optional[List[str]]) -> Dict[str, Any]:
    responses = dataset.responses
    summary: Dict[str, Any] = {
        "totalResponses": len(responses),
        "columnCount": len(responses[0]) if responses else 0,
    }

    if columns is not None:
        cols = _validate_columns(columns)
        # Each entry has the same shape as a single-column `stats` result
        summary["columnSummaries"] = {c: column_stats(dataset, [c]) for c in cols}

    return summary


def stratified_sample(
    dataset: SurveyDataset,
    limit: int,
    group_column: str = MEMBERSHIP_CATEGORY_COL,
) -> Dict[str, Any]:
    """
    Balanced sample across membership categories.

    Each category (including responses without one) contributes up to
    ceil(limit / number_of_categories) responses, in original order. The
    concatenation is then cut to `limit`.

    memberTypeDistribution reports each category's quota share before that
    final cut, so it can overstate what `data` holds for the last categories.
    """
    groups: Dict[str, List[Mapping[str, Any]]] = {}
    for r in dataset.responses:
        if group_column not in r:
            key = MISSING_GROUP_LABEL
        elif r[group_column] is None:
            key = NULL_GROUP_LABEL
        else:
            key = display_value(r[group_column])
        groups.setdefault(key, []).append(r)

    if not groups:
        return {"data": [], "sampleInfo": {"totalSample": 0, "memberTypeDistribution": {}}}

    per_type = math.ceil(limit / len(groups))

    sample: List[Mapping[str, Any]] = []
    for members in groups.values():
        sample.extend(members[:per_type])

    logger.info("Sampled %s groups, %s per group (limit=%s)", len(groups), per_type, limit)

    return {
        "data": [dict(r) for r in sample[:limit]],
        "sampleInfo": {
            "totalSample": min(len(sample), limit),
            "memberTypeDistribution": {k: min(len(v), per_type) for k, v in groups.items()},
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run_query(dataset: SurveyDataset, request: QueryRequest) -> Dict[str, Any]:
    logger.info("Running survey query type=%s limit=%s", request.query_type, request.limit)

    qt = request.query_type
    if qt == "filter":
        return filter_responses(dataset, request.filters, request.columns, _validate_limit(request.limit))
    if qt == "summary":
        return summarize(dataset, request.columns)
    if qt == "stats":
        return column_stats(dataset, request.columns)
    if qt == "sample":
        return stratified_sample(dataset, _validate_limit(request.limit))

    raise InvalidQueryError("Invalid query type")


def query(dataset: SurveyDataset, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Run a query from its JSON form ({queryType, filters?, columns?, limit?})."""
    return run_query(dataset, QueryRequest.from_payload(payload))
