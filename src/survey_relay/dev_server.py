"""Local FastAPI app serving both functions on their deployed paths.

Requests are turned into handler events, so CORS, method checks and error
envelopes come from the handlers themselves.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from fastapi import FastAPI, HTTPException, Request, Response

from survey_relay.config import APP_NAME, APP_VERSION
from survey_relay.handlers import chat_proxy, survey_query

logger = logging.getLogger(__name__)

FUNCTIONS: Dict[str, Callable[[Dict[str, Any], Any], Dict[str, Any]]] = {
    "claude-proxy": chat_proxy.handler,
    "survey-query": survey_query.handler,
}

FUNCTION_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]

app = FastAPI(title=APP_NAME, version=APP_VERSION)


async def _invoke(name: str, request: Request) -> Response:
    fn = FUNCTIONS.get(name)
    if fn is None:
        raise HTTPException(status_code=404, detail=f"Unknown function: {name}")

    body = (await request.body()).decode("utf-8")
    event = {
        "httpMethod": request.method,
        "path": request.url.path,
        "headers": dict(request.headers),
        "body": body,
        "isBase64Encoded": False,
    }

    result = fn(event, None)
    logger.info("%s %s -> %s", request.method, request.url.path, result.get("statusCode"))
    return Response(
        content=result.get("body") or "",
        status_code=int(result.get("statusCode", 200)),
        headers=result.get("headers") or {},
    )


@app.api_route("/.netlify/functions/{name}", methods=FUNCTION_METHODS)
async def netlify_function(name: str, request: Request) -> Response:
    return await _invoke(name, request)


@app.api_route("/api/{name}", methods=FUNCTION_METHODS)
async def api_function(name: str, request: Request) -> Response:
    return await _invoke(name, request)
