"""
Configuration and AWS client initialization for the E-Book Library Lambda handlers

This module provides:
- Environment variable configuration (Settings)
- AWS service clients (S3, DynamoDB), built lazily once per process
- The Services container injected into every handler
- Constants used across handlers
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable

import boto3
from botocore.config import Config

# Support both Lambda deployment and local development
try:
    # Lambda deployment
    from utils.apigw import is_preflight
    from utils.auth import CredentialService
    from utils.dynamodb import BookStore, UserStore
    from utils.errors import ConfigurationError, internal
    from utils.response import error_response, preflight_response
    from utils.s3 import ObjectStore
except ImportError:
    # Local development
    from ebook_backend.utils.apigw import is_preflight
    from ebook_backend.utils.auth import CredentialService
    from ebook_backend.utils.dynamodb import BookStore, UserStore
    from ebook_backend.utils.errors import ConfigurationError, internal
    from ebook_backend.utils.response import error_response, preflight_response
    from ebook_backend.utils.s3 import ObjectStore

logger = logging.getLogger()

if TYPE_CHECKING:
    from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource
    from mypy_boto3_s3.client import S3Client

# Constants
MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB
TOKEN_TTL_SECONDS = 12 * 60 * 60  # 12 hours
MAX_LIST_LIMIT = 100
MIN_LIST_LIMIT = 1
DEFAULT_PRESIGN_EXPIRES_SECONDS = 300
DEFAULT_BCRYPT_ROUNDS = 10
DEFAULT_ALLOWED_UPSTREAMS = "localhost:4566,127.0.0.1:4566"


def _internal_endpoint() -> str:
    explicit = os.environ.get("AWS_ENDPOINT_URL")
    if explicit:
        return explicit
    host = (
        os.environ.get("LOCALSTACK_HOSTNAME")
        or os.environ.get("AWS_ENDPOINT_HOST")
        or "localhost"
    )
    port = os.environ.get("AWS_ENDPOINT_PORT", "4566")
    return f"http://{host}:{port}"


def _split_csv(value: str) -> frozenset[str]:
    return frozenset(part.strip().lower() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Environment-provided configuration for one process."""

    region: str = "us-east-1"
    endpoint_url: str | None = None
    public_endpoint_url: str | None = None
    bucket_name: str = "ebook-library-files"
    books_table_name: str = "EBookLibraryBooks"
    users_table_name: str = "EBookLibraryUsers"
    jwt_secret: str = ""
    admin_email: str = ""
    presign_expires_seconds: int = DEFAULT_PRESIGN_EXPIRES_SECONDS
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    allowed_upstreams: frozenset[str] = field(
        default_factory=lambda: _split_csv(DEFAULT_ALLOWED_UPSTREAMS)
    )
    api_base_url_file: str | None = None
    api_base_url: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the process environment.

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        try:
            presign_expires = int(
                os.environ.get("PRESIGN_EXPIRES_SECONDS", DEFAULT_PRESIGN_EXPIRES_SECONDS)
            )
            bcrypt_rounds = int(os.environ.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric configuration: {e}") from e

        return cls(
            region=os.environ.get("AWS_REGION", "us-east-1"),
            endpoint_url=_internal_endpoint(),
            public_endpoint_url=os.environ.get(
                "AWS_PUBLIC_ENDPOINT_URL", "http://localhost:4566"
            ),
            bucket_name=os.environ.get("BUCKET_NAME", "ebook-library-files"),
            books_table_name=os.environ.get("TABLE_NAME", "EBookLibraryBooks"),
            users_table_name=os.environ.get("USERS_TABLE_NAME", "EBookLibraryUsers"),
            jwt_secret=os.environ.get("JWT_SECRET", ""),
            admin_email=os.environ.get("ADMIN_EMAIL", "").strip().lower(),
            presign_expires_seconds=presign_expires,
            bcrypt_rounds=bcrypt_rounds,
            allowed_upstreams=_split_csv(
                os.environ.get("BLOB_PROXY_ALLOWED_UPSTREAMS", DEFAULT_ALLOWED_UPSTREAMS)
            ),
            api_base_url_file=os.environ.get(
                "API_BASE_URL_FILE",
                os.path.join("infra", "localstack", "state", "ebook-library.env"),
            ),
            api_base_url=os.environ.get("API_BASE_URL") or None,
        )


@dataclass
class Services:
    """Long-lived dependencies handed to every handler invocation."""

    settings: Settings
    users: UserStore
    books: BookStore
    objects: ObjectStore
    credentials: CredentialService


def _client_kwargs(settings: Settings, endpoint_url: str | None) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"region_name": settings.region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return kwargs


def build_services(settings: Settings) -> Services:
    """
    Create the AWS clients and store wrappers for the given settings.

    Raises:
        ConfigurationError: If the token signing secret is not configured
    """
    if not settings.jwt_secret:
        raise ConfigurationError("JWT_SECRET must be set")

    s3_config = Config(signature_version="s3v4", s3={"addressing_style": "path"})

    s3_client: "S3Client" = boto3.client(
        "s3", config=s3_config, **_client_kwargs(settings, settings.endpoint_url)
    )
    # Presigned URLs must be reachable from the user's browser, not from the Lambda
    s3_public_client: "S3Client" = boto3.client(
        "s3",
        config=s3_config,
        **_client_kwargs(settings, settings.public_endpoint_url or settings.endpoint_url),
    )
    dynamodb: "DynamoDBServiceResource" = boto3.resource(
        "dynamodb", **_client_kwargs(settings, settings.endpoint_url)
    )

    return Services(
        settings=settings,
        users=UserStore(dynamodb.Table(settings.users_table_name)),
        books=BookStore(dynamodb.Table(settings.books_table_name)),
        objects=ObjectStore(s3_client, s3_public_client, settings.bucket_name),
        credentials=CredentialService(
            secret=settings.jwt_secret,
            rounds=settings.bcrypt_rounds,
            ttl_seconds=TOKEN_TTL_SECONDS,
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache(maxsize=1)
def get_services() -> Services:
    """Process-wide services, created on first use and reused across invocations."""
    return build_services(get_settings())


def invoke(handle: Callable[[dict, Services], dict], event: dict) -> dict:
    """
    Run a handler body with the process-wide services.

    CORS preflight requests are answered before any dependency is built.

    Args:
        handle: Handler body taking (event, services)
        event: API Gateway event

    Returns:
        dict: API Gateway response
    """
    if is_preflight(event):
        return preflight_response()
    try:
        services = get_services()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {str(e)}", exc_info=True)
        return error_response(internal("Server is not configured"))
    return handle(event, services)
