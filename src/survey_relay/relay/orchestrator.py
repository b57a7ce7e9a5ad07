from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from survey_relay import config
from survey_relay.core.data_loader import SurveyDataset
from survey_relay.relay.anthropic_client import create_message
from survey_relay.relay.tools import SURVEY_QUERY_TOOL, build_tool_result

logger = logging.getLogger(__name__)


def tool_use_blocks(response: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    content = response.get("content") or []
    return [b for b in content if isinstance(b, Mapping) and b.get("type") == "tool_use"]


def build_request(messages: List[Dict[str, Any]], max_tokens: int) -> Dict[str, Any]:
    return {
        "model": config.ANTHROPIC_MODEL,
        "max_tokens": max_tokens,
        "messages": messages,
        "tools": [SURVEY_QUERY_TOOL],
    }


def run_chat(
    messages: List[Dict[str, Any]],
    api_key: str,
    dataset: Optional[SurveyDataset] = None,
    max_tokens: Optional[int] = None,
) -> Dict[str, Any]:
    """
    One completion, plus at most one follow-up answering its tool calls.

    Every tool_use block in the first response gets exactly one tool_result
    (errors included). The follow-up response is returned as-is, even if it
    asks for more tools.
    """
    budget = config.DEFAULT_MAX_TOKENS if max_tokens is None else max_tokens

    first = create_message(build_request(messages, budget), api_key)

    calls = tool_use_blocks(first)
    if not calls:
        return first

    logger.info("Model requested %s tool call(s)", len(calls))
    results = [build_tool_result(block, dataset) for block in calls]

    follow_up_messages = list(messages) + [
        {"role": "assistant", "content": first.get("content")},
        {"role": "user", "content": results},
    ]
    return create_message(build_request(follow_up_messages, budget), api_key)
