"""
Error taxonomy for the E-Book Library API

Validation and authorization steps return an ApiError value instead of raising;
the response layer maps its kind to an HTTP status.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(Enum):
    VALIDATION = ("ValidationError", 400)
    INVALID_BODY = ("InvalidBody", 400)
    UNAUTHORIZED = ("Unauthorized", 401)
    FORBIDDEN = ("Forbidden", 403)
    NOT_FOUND = ("NotFound", 404)
    CONFLICT = ("Conflict", 409)
    GONE = ("Gone", 410)
    PAYLOAD_TOO_LARGE = ("PayloadTooLarge", 413)
    INTERNAL = ("Internal", 500)
    BAD_GATEWAY = ("BadGateway", 502)

    def __init__(self, label: str, status_code: int) -> None:
        self.label = label
        self.status_code = status_code


@dataclass(frozen=True)
class ApiError:
    """A request failure that maps directly onto an HTTP error response."""

    kind: ErrorKind
    message: str
    details: Any = None

    @property
    def status_code(self) -> int:
        return self.kind.status_code


class ConfigurationError(RuntimeError):
    """Raised when the process environment is missing required settings."""


def validation_error(message: str, details: Any = None) -> ApiError:
    return ApiError(ErrorKind.VALIDATION, message, details)


def invalid_body(message: str) -> ApiError:
    return ApiError(ErrorKind.INVALID_BODY, message)


def unauthorized(message: str = "Unauthorized") -> ApiError:
    return ApiError(ErrorKind.UNAUTHORIZED, message)


def forbidden(message: str) -> ApiError:
    return ApiError(ErrorKind.FORBIDDEN, message)


def not_found(message: str) -> ApiError:
    return ApiError(ErrorKind.NOT_FOUND, message)


def conflict(message: str) -> ApiError:
    return ApiError(ErrorKind.CONFLICT, message)


def gone(message: str) -> ApiError:
    return ApiError(ErrorKind.GONE, message)


def payload_too_large(message: str) -> ApiError:
    return ApiError(ErrorKind.PAYLOAD_TOO_LARGE, message)


def internal(message: str) -> ApiError:
    return ApiError(ErrorKind.INTERNAL, message)


def bad_gateway(message: str) -> ApiError:
    return ApiError(ErrorKind.BAD_GATEWAY, message)
