from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from survey_relay.config import SURVEY_DATA_PATH

logger = logging.getLogger(__name__)


class DataLoaderError(Exception):
    """Raised when the survey export is missing or has an unexpected shape."""


@dataclass(frozen=True)
class SurveyDataset:
    """
    Read-only, ordered collection of survey responses.

    Each response maps question text to the respondent's answer. Records are
    stored as read-only mappings so a dataset can be shared across
    invocations without any of them mutating it.
    """
    responses: Tuple[Mapping[str, Any], ...]
    source: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], source: Optional[str] = None) -> "SurveyDataset":
        frozen: List[Mapping[str, Any]] = []
        for i, rec in enumerate(records):
            if not isinstance(rec, Mapping):
                raise DataLoaderError(f"Response #{i} is not an object: {type(rec).__name__}")
            frozen.append(MappingProxyType(dict(rec)))
        return cls(responses=tuple(frozen), source=source)

    def __len__(self) -> int:
        return len(self.responses)

    def column_values(self, column: str) -> List[Any]:
        """Cell values for one column, in record order (None where absent)."""
        return [r.get(column) for r in self.responses]


def _records_from_json(path: Path) -> List[Dict[str, Any]]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise DataLoaderError(f"Survey export {path} is not valid JSON: {exc}") from exc

    # Accept both {"responses": [...]} and a bare list
    if isinstance(data, dict):
        data = data.get("responses")
    if not isinstance(data, list):
        raise DataLoaderError(f"Survey export {path} must contain a list of responses")
    return data


def _records_from_csv(path: Path) -> List[Dict[str, Any]]:
    # Keep every answer as text; blank cells become missing values
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    records: List[Dict[str, Any]] = []
    for rec in df.to_dict(orient="records"):
        records.append({k: v for k, v in rec.items() if v != ""})
    return records


def load_survey_dataset(path: Optional[Path | str] = None) -> SurveyDataset:
    """
    Load survey responses from a JSON or CSV export.

    JSON may be either {"responses": [...]} or a bare list of objects.
    CSV is read with every cell as text and empty cells dropped.
    """
    p = Path(path) if path is not None else SURVEY_DATA_PATH
    if not p.exists():
        raise DataLoaderError(f"Survey export not found: {p}")

    if p.suffix.lower() == ".csv":
        records = _records_from_csv(p)
    else:
        records = _records_from_json(p)

    dataset = SurveyDataset.from_records(records, source=str(p))
    logger.info("Loaded %s survey responses from %s", len(dataset), p)
    return dataset


_DATASET: Optional[SurveyDataset] = None


def get_survey_dataset() -> SurveyDataset:
    """Process-wide dataset, loaded on first use and never reloaded."""
    global _DATASET
    if _DATASET is None:
        _DATASET = load_survey_dataset()
    return _DATASET
