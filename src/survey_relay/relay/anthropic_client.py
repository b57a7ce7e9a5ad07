from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from survey_relay import config

logger = logging.getLogger(__name__)


class AnthropicClientError(Exception):
    """Raised when the Messages API cannot be reached or returns garbage."""


class UpstreamError(AnthropicClientError):
    """The Messages API answered with a non-success status."""

    def __init__(self, status_code: int, details: str) -> None:
        super().__init__(f"Anthropic API returned {status_code}")
        self.status_code = status_code
        self.details = details


def _build_session() -> requests.Session:
    """
    Session with connection pooling only.

    Failed completions surface to the caller immediately, so retries are
    disabled at the adapter level.
    """
    session = requests.Session()
    retry = Retry(total=0, connect=0, read=0, status=0, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


_SESSION: Optional[requests.Session] = None


def get_session() -> requests.Session:
    global _SESSION
    if _SESSION is None:
        _SESSION = _build_session()
    return _SESSION


def build_headers(api_key: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": config.ANTHROPIC_VERSION,
    }


def create_message(payload: Dict[str, Any], api_key: str) -> Dict[str, Any]:
    """
    POST one request to the Messages API and return its decoded JSON body.

    payload is sent as-is ({model, max_tokens, messages, tools?}).
    """
    logger.info(
        "Calling Messages API model=%s max_tokens=%s messages=%s tools=%s",
        payload.get("model"),
        payload.get("max_tokens"),
        len(payload.get("messages") or []),
        len(payload.get("tools") or []),
    )

    try:
        resp = get_session().post(
            config.ANTHROPIC_API_URL,
            json=payload,
            headers=build_headers(api_key),
            timeout=config.ANTHROPIC_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        raise AnthropicClientError(f"HTTP error while calling the Messages API: {exc}") from exc

    if not resp.ok:
        logger.warning("Messages API returned status=%s", resp.status_code)
        raise UpstreamError(resp.status_code, resp.text or "")

    try:
        data = resp.json()
    except ValueError as exc:
        preview = (resp.text or "")[:200]
        raise AnthropicClientError(f"Non-JSON response from the Messages API. Preview: {preview}") from exc

    if not isinstance(data, dict):
        raise AnthropicClientError(f"Unexpected Messages API response type: {type(data).__name__}")

    logger.info("Messages API stop_reason=%s", data.get("stop_reason"))
    return data
