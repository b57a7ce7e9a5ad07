from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest

from survey_relay.config import MEMBERSHIP_CATEGORY_COL
from survey_relay.core.data_loader import SurveyDataset


@pytest.fixture
def dataset() -> SurveyDataset:
    return SurveyDataset.from_records(
        [
            {"age": "25", "city": "New York", MEMBERSHIP_CATEGORY_COL: "Regular", "rating": "A"},
            {"age": "35", "city": "Boston", MEMBERSHIP_CATEGORY_COL: "Associate", "rating": "A"},
            {"age": "abc", "city": "new york city", MEMBERSHIP_CATEGORY_COL: "Regular", "rating": "B"},
            {"age": "41", MEMBERSHIP_CATEGORY_COL: "Regular", "rating": ""},
        ]
    )


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else (json.dumps(payload) if payload is not None else "")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; replays queued responses and records calls."""

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


@pytest.fixture
def fake_session(monkeypatch) -> FakeSession:
    session = FakeSession()
    monkeypatch.setattr("survey_relay.relay.anthropic_client._SESSION", session)
    return session


@pytest.fixture
def make_response():
    """Factory for canned HTTP responses: make_response(status, payload, text=None)."""
    return FakeResponse
