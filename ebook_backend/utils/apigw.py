"""
API Gateway event helpers

Handlers are wired to REST API (v1) proxy integrations, but these helpers also
accept the HTTP API (v2) event shape.
"""

from __future__ import annotations

import base64
from typing import Any
from urllib.parse import urlencode


def get_http_method(event: dict) -> str:
    request_context = event.get("requestContext") or {}
    method = (
        (request_context.get("http") or {}).get("method")
        or event.get("httpMethod")
        or request_context.get("httpMethod")
        or ""
    )
    return method.upper()


def is_preflight(event: dict) -> bool:
    return get_http_method(event) == "OPTIONS"


def get_request_id(event: dict) -> str | None:
    return (event.get("requestContext") or {}).get("requestId")


def get_headers(event: dict) -> dict[str, str]:
    return event.get("headers") or {}


def get_header(event: dict, name: str) -> str | None:
    """Case-insensitive header lookup."""
    wanted = name.lower()
    for key, value in get_headers(event).items():
        if key.lower() == wanted:
            return value
    return None


def get_query_params(event: dict) -> dict[str, str]:
    return event.get("queryStringParameters") or {}


def get_query_param(event: dict, name: str) -> str | None:
    return get_query_params(event).get(name)


def get_raw_query_string(event: dict) -> str:
    """
    Query string as the client sent it, without the leading ``?``.

    v2 events carry it verbatim; for v1 events it is rebuilt from the
    multi-value parameters so repeated keys survive.
    """
    if event.get("rawQueryString"):
        return event["rawQueryString"]
    multi: dict[str, list[str]] | None = event.get("multiValueQueryStringParameters")
    if multi:
        return urlencode(multi, doseq=True)
    single = get_query_params(event)
    return urlencode(single) if single else ""


def get_raw_body(event: dict) -> bytes | None:
    """Request body bytes, decoding API Gateway's base64 wrapping when flagged."""
    body: Any = event.get("body")
    if body is None:
        return None
    if event.get("isBase64Encoded"):
        return base64.b64decode(body)
    return body.encode("utf-8") if isinstance(body, str) else bytes(body)
