from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

import requests

from survey_relay import config
from survey_relay.core.data_loader import SurveyDataset, get_survey_dataset
from survey_relay.core.query_engine import QUERY_TYPES, QueryEngineError, query
from survey_relay.relay.anthropic_client import get_session

logger = logging.getLogger(__name__)

TOOL_NAME = "query_survey_data"

SURVEY_QUERY_TOOL: Dict[str, Any] = {
    "name": TOOL_NAME,
    "description": (
        "Query the member survey responses. Use 'filter' to list responses "
        "matching column filters, 'summary' for response and column counts, "
        "'stats' for answer frequencies and numeric summaries of specific "
        "columns, and 'sample' for a sample balanced across membership "
        "categories. Column names are the full survey question texts."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "queryType": {
                "type": "string",
                "enum": list(QUERY_TYPES),
                "description": "Type of query to run",
            },
            "filters": {
                "type": "object",
                "description": (
                    "Map of column name to either an exact value or "
                    "{\"operator\": \"equals\"|\"contains\"|\"gte\"|\"lte\", \"value\": ...}"
                ),
            },
            "columns": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Columns to return (filter) or analyze (summary, stats)",
            },
            "limit": {
                "type": "integer",
                "description": "Maximum number of rows to return",
                "default": config.DEFAULT_QUERY_LIMIT,
            },
        },
        "required": ["queryType"],
    },
}


class RemoteQueryError(QueryEngineError):
    """The remote survey-query function rejected the request or was unreachable."""


def _remote_query(tool_input: Mapping[str, Any]) -> Dict[str, Any]:
    try:
        resp = get_session().post(
            config.SURVEY_QUERY_URL,
            json=dict(tool_input),
            timeout=config.SURVEY_QUERY_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        raise RemoteQueryError(f"HTTP error while calling survey query: {exc}") from exc

    try:
        data = resp.json()
    except ValueError as exc:
        raise RemoteQueryError(f"Non-JSON response from survey query (status={resp.status_code})") from exc

    if not resp.ok:
        msg = data.get("error") if isinstance(data, dict) else None
        raise RemoteQueryError(msg or f"Survey query failed with status {resp.status_code}")
    return data


def execute_survey_query(tool_input: Mapping[str, Any], dataset: Optional[SurveyDataset] = None) -> Dict[str, Any]:
    """
    Run one `query_survey_data` call, in process or against SURVEY_QUERY_URL.

    The local dataset is only loaded when a call actually runs in process.
    """
    if config.SURVEY_QUERY_URL:
        return _remote_query(tool_input)
    return query(dataset if dataset is not None else get_survey_dataset(), tool_input)


def build_tool_result(block: Mapping[str, Any], dataset: Optional[SurveyDataset] = None) -> Dict[str, Any]:
    """
    Execute a tool_use block and wrap the outcome as a tool_result block.

    Failures become an error result for that call instead of propagating.
    """
    tool_use_id = block.get("id")
    name = block.get("name")
    tool_input = block.get("input") or {}

    try:
        if name != TOOL_NAME:
            raise QueryEngineError(f"Unknown tool: {name}")
        result = execute_survey_query(tool_input, dataset)
    except Exception as exc:
        logger.warning("Tool call %s (%s) failed: %s", tool_use_id, name, exc)
        return {
            "type": "tool_result",
            "tool_use_id": tool_use_id,
            "content": f"Error: {exc}",
            "is_error": True,
        }

    logger.info("Tool call %s (%s) succeeded", tool_use_id, name)
    return {
        "type": "tool_result",
        "tool_use_id": tool_use_id,
        "content": json.dumps(result, ensure_ascii=False),
    }
