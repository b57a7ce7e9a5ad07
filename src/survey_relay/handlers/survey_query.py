from __future__ import annotations

import logging
from typing import Any, Dict

from survey_relay.core.data_loader import get_survey_dataset
from survey_relay.core.query_engine import query
from survey_relay.handlers.common import (
    RequestError,
    http_method,
    json_response,
    method_not_allowed,
    parse_json_body,
    preflight_response,
)

logger = logging.getLogger(__name__)


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    method = http_method(event)
    if method == "OPTIONS":
        return preflight_response()
    if method != "POST":
        return method_not_allowed()

    # Every failure here is reported to the caller as a bad request
    try:
        payload = parse_json_body(event)
        result = query(get_survey_dataset(), payload)
    except RequestError as exc:
        return json_response(400, {"error": exc.message})
    except Exception as exc:
        logger.warning("Survey query failed: %s", exc)
        return json_response(400, {"error": str(exc)})

    return json_response(200, result)
