from __future__ import annotations

import base64
import json

import pytest

from survey_relay import config
from survey_relay.handlers import chat_proxy, survey_query
from survey_relay.relay.anthropic_client import UpstreamError


def _post(body) -> dict:
    return {"httpMethod": "POST", "body": body if isinstance(body, str) else json.dumps(body)}


@pytest.fixture(autouse=True)
def _use_test_dataset(monkeypatch, dataset):
    monkeypatch.setattr(survey_query, "get_survey_dataset", lambda: dataset)
    monkeypatch.setattr("survey_relay.relay.tools.get_survey_dataset", lambda: dataset)


@pytest.mark.parametrize("fn", [survey_query.handler, chat_proxy.handler])
def test_preflight_and_method_checks(fn) -> None:
    resp = fn({"httpMethod": "OPTIONS"}, None)
    assert resp["statusCode"] == 200
    assert resp["body"] == ""
    assert resp["headers"]["Access-Control-Allow-Origin"] == "*"
    assert "POST" in resp["headers"]["Access-Control-Allow-Methods"]

    resp = fn({"httpMethod": "GET"}, None)
    assert resp["statusCode"] == 405
    assert json.loads(resp["body"]) == {"error": "Method not allowed"}


def test_survey_query_ok() -> None:
    resp = survey_query.handler(_post({"queryType": "summary"}), None)
    assert resp["statusCode"] == 200
    assert resp["headers"]["Content-Type"] == "application/json"
    assert json.loads(resp["body"]) == {"totalResponses": 4, "columnCount": 4}


def test_survey_query_accepts_http_api_v2_and_base64_events() -> None:
    body = base64.b64encode(json.dumps({"queryType": "summary"}).encode()).decode()
    event = {"requestContext": {"http": {"method": "POST"}}, "body": body, "isBase64Encoded": True}
    resp = survey_query.handler(event, None)
    assert resp["statusCode"] == 200


@pytest.mark.parametrize(
    "body, message",
    [
        ({"queryType": "drop"}, "Invalid query type"),
        ("{broken", "Invalid JSON body"),
        ({"queryType": "filter", "filters": [1]}, "filters must be an object"),
    ],
)
def test_survey_query_failures_are_400(body, message) -> None:
    resp = survey_query.handler(_post(body), None)
    assert resp["statusCode"] == 400
    assert message in json.loads(resp["body"])["error"]


def test_chat_proxy_relays_result(monkeypatch) -> None:
    captured = {}

    def fake_run_chat(messages, api_key, dataset=None, max_tokens=None):
        captured.update(messages=messages, api_key=api_key, dataset=dataset, max_tokens=max_tokens)
        return {"id": "msg_1", "content": [{"type": "text", "text": "ok"}]}

    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "sk-env")
    monkeypatch.setattr(chat_proxy, "run_chat", fake_run_chat)

    resp = chat_proxy.handler(_post({"messages": [{"role": "user", "content": "hi"}], "maxTokens": 100}), None)

    assert resp["statusCode"] == 200
    assert json.loads(resp["body"])["id"] == "msg_1"
    assert captured["api_key"] == "sk-env"
    assert captured["max_tokens"] == 100
    # the dataset is left for tool execution to load when needed
    assert captured["dataset"] is None


def test_chat_proxy_falls_back_to_body_api_key(monkeypatch) -> None:
    seen = {}

    def fake_run_chat(messages, api_key, dataset=None, max_tokens=None):
        seen["key"] = api_key
        return {}

    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(chat_proxy, "run_chat", fake_run_chat)

    resp = chat_proxy.handler(_post({"messages": [{"role": "user", "content": "hi"}], "apiKey": "sk-body"}), None)

    assert resp["statusCode"] == 200
    assert seen["key"] == "sk-body"


@pytest.mark.parametrize(
    "body",
    ["not json", {"messages": []}, {"maxTokens": 10}, {"messages": [{"role": "user", "content": "x"}], "maxTokens": "lots"}],
)
def test_chat_proxy_malformed_requests(monkeypatch, body) -> None:
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "sk-env")
    resp = chat_proxy.handler(_post(body), None)
    assert resp["statusCode"] == 400
    assert "error" in json.loads(resp["body"])


def test_chat_proxy_without_credentials(monkeypatch) -> None:
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "")
    resp = chat_proxy.handler(_post({"messages": [{"role": "user", "content": "hi"}]}), None)
    assert resp["statusCode"] == 500
    assert "not configured" in json.loads(resp["body"])["error"]


def test_chat_proxy_propagates_upstream_status(monkeypatch) -> None:
    def failing(*args, **kwargs):
        raise UpstreamError(401, '{"error":{"type":"authentication_error"}}')

    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "sk-env")
    monkeypatch.setattr(chat_proxy, "run_chat", failing)

    resp = chat_proxy.handler(_post({"messages": [{"role": "user", "content": "hi"}]}), None)

    assert resp["statusCode"] == 401
    body = json.loads(resp["body"])
    assert body == {
        "error": "Anthropic API error",
        "details": '{"error":{"type":"authentication_error"}}',
        "status": 401,
    }


def test_chat_proxy_internal_error(monkeypatch) -> None:
    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "sk-env")
    monkeypatch.setattr(chat_proxy, "run_chat", broken)

    resp = chat_proxy.handler(_post({"messages": [{"role": "user", "content": "hi"}]}), None)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"]) == {"error": "Internal server error", "details": "boom"}
