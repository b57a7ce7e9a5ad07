from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from survey_relay import config
from survey_relay.handlers.common import (
    MalformedRequestError,
    MisconfiguredError,
    RequestError,
    http_method,
    json_response,
    method_not_allowed,
    parse_json_body,
    preflight_response,
)
from survey_relay.relay.anthropic_client import UpstreamError
from survey_relay.relay.orchestrator import run_chat

logger = logging.getLogger(__name__)


def _validate_messages(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    messages = payload.get("messages")
    if not messages or not isinstance(messages, list):
        raise MalformedRequestError("Missing required field: messages")
    return messages


def _validate_max_tokens(payload: Dict[str, Any]) -> Optional[int]:
    max_tokens = payload.get("maxTokens")
    if max_tokens is None:
        return None
    if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or max_tokens <= 0:
        raise MalformedRequestError("maxTokens must be a positive integer")
    return max_tokens


def _resolve_api_key(payload: Dict[str, Any]) -> str:
    key = config.ANTHROPIC_API_KEY or str(payload.get("apiKey") or "").strip()
    if not key:
        raise MisconfiguredError("Anthropic API key is not configured")
    return key


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    method = http_method(event)
    if method == "OPTIONS":
        return preflight_response()
    if method != "POST":
        return method_not_allowed()

    try:
        payload = parse_json_body(event)
        messages = _validate_messages(payload)
        max_tokens = _validate_max_tokens(payload)
        api_key = _resolve_api_key(payload)

        result = run_chat(messages, api_key, max_tokens=max_tokens)
    except RequestError as exc:
        if exc.status_code >= 500:
            logger.error("Chat proxy misconfigured: %s", exc.message)
        return json_response(exc.status_code, exc.to_body())
    except UpstreamError as exc:
        return json_response(
            exc.status_code,
            {"error": "Anthropic API error", "details": exc.details, "status": exc.status_code},
        )
    except Exception as exc:
        logger.exception("Chat proxy error")
        return json_response(500, {"error": "Internal server error", "details": str(exc)})

    return json_response(200, result)
