"""
Response building utilities for the E-Book Library API

Provides functions to create standardized API Gateway proxy responses.
"""

from __future__ import annotations

import base64
import json
from decimal import Decimal
from typing import Any

from .errors import ApiError

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,DELETE,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def convert_decimal(value: Any) -> Any:
    """
    Convert Decimal types (from DynamoDB) to int or float for JSON serialization.

    Used as the ``default`` hook of ``json.dumps``.

    Args:
        value: Value that json could not serialize on its own

    Returns:
        int if whole number, float otherwise

    Raises:
        TypeError: If value is not a Decimal
    """
    if isinstance(value, Decimal):
        return int(value) if value % 1 == 0 else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def api_response(status_code: int, body: Any, headers: dict[str, str] | None = None) -> dict:
    """
    Helper to format API Gateway response with CORS headers.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized)
        headers: Extra headers merged over the defaults

    Returns:
        dict: API Gateway response with headers
    """
    return {
        "statusCode": status_code,
        "body": json.dumps(body, default=convert_decimal),
        "headers": {
            "Content-Type": "application/json",
            **CORS_HEADERS,
            **(headers or {}),
        },
    }


def error_response(error: ApiError) -> dict:
    """
    Map an ApiError onto its HTTP response.

    Body is ``{"message": ...}`` with ``details`` only when the error carries them.
    """
    body: dict[str, Any] = {"message": error.message}
    if error.details:
        body["details"] = error.details
    return api_response(error.status_code, body)


def no_content() -> dict:
    """204 response with an empty body."""
    return {"statusCode": 204, "headers": dict(CORS_HEADERS), "body": ""}


def preflight_response() -> dict:
    """CORS preflight answer: 200 with no body."""
    return {"statusCode": 200, "headers": dict(CORS_HEADERS), "body": ""}


def binary_response(status_code: int, body: bytes, headers: dict[str, str]) -> dict:
    """
    Response carrying raw bytes, base64-encoded as API Gateway requires.

    Args:
        status_code: HTTP status code
        body: Raw response bytes (may be empty)
        headers: Complete response header set

    Returns:
        dict: API Gateway response with ``isBase64Encoded`` set
    """
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": base64.b64encode(body).decode("ascii"),
        "isBase64Encoded": True,
    }


def serialize_user(user_item: dict) -> dict:
    """
    Convert a users-table item to its API shape.

    The password hash never leaves this function.

    Args:
        user_item: DynamoDB item (users table) or token-claims-shaped dict

    Returns:
        dict: User object for API response
    """
    user: dict[str, Any] = {
        "userId": user_item.get("userId"),
        "email": user_item.get("email"),
        "name": user_item.get("name"),
        "role": user_item.get("role"),
    }
    if "createdAt" in user_item:
        user["createdAt"] = user_item["createdAt"]
    return user
