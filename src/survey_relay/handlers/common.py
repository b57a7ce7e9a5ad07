from __future__ import annotations

import base64
import json
from typing import Any, Dict, Optional

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


class RequestError(Exception):
    """Base for failures that map directly to an HTTP status."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class MalformedRequestError(RequestError):
    status_code = 400


class MisconfiguredError(RequestError):
    status_code = 500


def json_response(status_code: int, payload: Any) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {**CORS_HEADERS, "Content-Type": "application/json"},
        "body": json.dumps(payload, ensure_ascii=False),
    }


def preflight_response() -> Dict[str, Any]:
    return {"statusCode": 200, "headers": dict(CORS_HEADERS), "body": ""}


def method_not_allowed() -> Dict[str, Any]:
    return json_response(405, {"error": "Method not allowed"})


def http_method(event: Dict[str, Any]) -> str:
    """API Gateway v1/Netlify put it at the top level; v2 under requestContext.http."""
    method = event.get("httpMethod")
    if not method:
        method = ((event.get("requestContext") or {}).get("http") or {}).get("method")
    return str(method or "").upper()


def parse_json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    body = event.get("body")
    if isinstance(body, dict):
        return body
    if body is None or body == "":
        raise MalformedRequestError("Request body is required")

    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            raise MalformedRequestError(f"Invalid base64 body: {exc}") from exc

    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedRequestError(f"Invalid JSON body: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedRequestError("Request body must be a JSON object")
    return data
