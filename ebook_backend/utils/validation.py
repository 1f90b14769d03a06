"""
Request validation utilities for the E-Book Library API

Provides the pydantic request schemas and functions to validate and extract
data from API Gateway events. Validation order is body presence, JSON parse,
then schema check; a schema failure reports every violated field.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any, TypeVar
from urllib.parse import unquote

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, Field, ValidationError
from pydantic_core import PydanticCustomError

from .apigw import get_raw_body
from .errors import ApiError, invalid_body, validation_error

logger = logging.getLogger()

ModelT = TypeVar("ModelT", bound=BaseModel)


def _check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email", "Invalid email address")
    return value


Email = Annotated[str, Field(max_length=320), AfterValidator(_check_email)]


class SignupRequest(BaseModel):
    email: Email
    name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=8, max_length=200)


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(min_length=1, max_length=200)


class UploadRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    author: str = Field(min_length=1, max_length=200)
    genre: Annotated[str, Field(min_length=1, max_length=100)] | None = None
    fileName: str = Field(min_length=1, max_length=300)
    contentType: str = Field(min_length=1, max_length=100)
    fileBase64: str = Field(min_length=1)


def get_path_param(event: dict, param: str) -> tuple[str | None, ApiError | None]:
    """
    Extract and URL-decode a path parameter from API Gateway event.

    Args:
        event: API Gateway event
        param: Parameter name to extract

    Returns:
        tuple: (decoded_value, error) - If successful, error is None
    """
    path_params = event.get("pathParameters") or {}
    if not path_params.get(param):
        logger.warning(f"Missing {param} in path parameters")
        return None, validation_error(f"Missing {param}")
    return unquote(path_params[param]), None


def parse_json_body(event: dict) -> tuple[Any, ApiError | None]:
    """
    Parse JSON body from API Gateway event.

    Args:
        event: API Gateway event

    Returns:
        tuple: (parsed_body, error) - If successful, error is None
    """
    try:
        raw = get_raw_body(event)
    except ValueError:
        logger.warning("Request body is not valid base64")
        return None, invalid_body("Invalid JSON body")

    if not raw:
        logger.warning("Missing request body")
        return None, invalid_body("Missing request body")

    try:
        return json.loads(raw), None
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Invalid JSON in request body")
        return None, invalid_body("Invalid JSON body")


def flatten_errors(error: ValidationError) -> dict[str, Any]:
    """
    Group pydantic errors by top-level field.

    Returns:
        dict: ``{"formErrors": [...], "fieldErrors": {field: [messages]}}``
    """
    form_errors: list[str] = []
    field_errors: dict[str, list[str]] = {}
    for err in error.errors():
        loc = err.get("loc") or ()
        if loc:
            field_errors.setdefault(str(loc[0]), []).append(err["msg"])
        else:
            form_errors.append(err["msg"])
    return {"formErrors": form_errors, "fieldErrors": field_errors}


def validate_body(model: type[ModelT], data: Any) -> tuple[ModelT | None, ApiError | None]:
    """
    Validate parsed JSON against a request schema.

    Args:
        model: pydantic model describing the request body
        data: Parsed JSON value

    Returns:
        tuple: (validated_model, error) - If successful, error is None
    """
    try:
        return model.model_validate(data), None
    except ValidationError as e:
        details = flatten_errors(e)
        logger.warning(f"Validation failed for fields: {sorted(details['fieldErrors'])}")
        return None, validation_error("Validation failed", details)


def parse_request(event: dict, model: type[ModelT]) -> tuple[ModelT | None, ApiError | None]:
    """Parse and validate a JSON request body in one step."""
    data, error = parse_json_body(event)
    if error:
        return None, error
    return validate_body(model, data)
