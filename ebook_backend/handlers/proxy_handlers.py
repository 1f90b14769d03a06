"""
Lambda handlers that give the browser same-origin access to the backend

- blob_proxy_handler: re-serves a presigned S3 URL with rewritten headers so the
  in-browser reader can render PDF/EPUB content (Range requests included)
- api_proxy_handler: forwards /api/proxy/* to the backend's current base URL

Neither handler uses the data stores or bearer tokens; the API proxy forwards
the caller's Authorization header untouched.
"""

from __future__ import annotations

import logging
from urllib.parse import quote, unquote, urlparse

import requests

# Support both Lambda deployment and local development
try:
    # Lambda deployment
    import config
    from utils.apigw import (
        get_header,
        get_headers,
        get_http_method,
        get_query_param,
        get_raw_body,
        get_raw_query_string,
        get_request_id,
        is_preflight,
    )
    from utils.base_url import BaseUrlResolver, default_resolver
    from utils.errors import (
        ConfigurationError,
        bad_gateway,
        forbidden,
        internal,
        invalid_body,
        validation_error,
    )
    from utils.response import CORS_HEADERS, binary_response, error_response, preflight_response
    from utils.sanitize import content_disposition
except ImportError:
    # Local development
    import ebook_backend.config as config
    from ebook_backend.utils.apigw import (
        get_header,
        get_headers,
        get_http_method,
        get_query_param,
        get_raw_body,
        get_raw_query_string,
        get_request_id,
        is_preflight,
    )
    from ebook_backend.utils.base_url import BaseUrlResolver, default_resolver
    from ebook_backend.utils.errors import (
        ConfigurationError,
        bad_gateway,
        forbidden,
        internal,
        invalid_body,
        validation_error,
    )
    from ebook_backend.utils.response import (
        CORS_HEADERS,
        binary_response,
        error_response,
        preflight_response,
    )
    from ebook_backend.utils.sanitize import content_disposition

logger = logging.getLogger()
logger.setLevel(logging.INFO)

CHUNK_SIZE = 64 * 1024
REQUEST_TIMEOUT = 30  # seconds
DEFAULT_PORTS = {"http": 80, "https": 443}

# Headers needed for progressive/range-based rendering of large files
PASSTHROUGH_HEADERS = ("accept-ranges", "content-length", "content-range", "etag", "last-modified")
STRIPPED_REQUEST_HEADERS = {"host", "connection", "content-length"}
STRIPPED_RESPONSE_HEADERS = {"transfer-encoding"}


# Lambda caps synchronous responses at 6 MB; base64 adds a third on top of this
MAX_PROXY_BODY_BYTES = 4 * 1024 * 1024
BODY_TOO_LARGE = "Response too large to proxy; request a byte range"


def _declared_length(upstream: requests.Response) -> int | None:
    try:
        return int(upstream.headers.get("content-length"))
    except (TypeError, ValueError):
        return None


def _read_body(upstream: requests.Response) -> bytes | None:
    """
    Drain the upstream body chunk by chunk, leaving any content encoding intact.

    Returns:
        bytes: The body, or None if it exceeds MAX_PROXY_BODY_BYTES
    """
    declared = _declared_length(upstream)
    if declared is not None and declared > MAX_PROXY_BODY_BYTES:
        return None

    chunks = []
    size = 0
    for chunk in upstream.raw.stream(CHUNK_SIZE, decode_content=False):
        size += len(chunk)
        if size > MAX_PROXY_BODY_BYTES:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


def upstream_authority(url: str) -> str | None:
    """
    ``host:port`` of an http(s) URL, with the scheme's default port filled in.

    Returns:
        str: Lowercased authority, or None if the URL is not a usable http(s) URL
    """
    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError:
        return None
    if parsed.scheme not in DEFAULT_PORTS or not parsed.hostname:
        return None
    return f"{parsed.hostname.lower()}:{port or DEFAULT_PORTS[parsed.scheme]}"


def handle_blob_proxy(event: dict, allowed_upstreams: frozenset[str]) -> dict:
    """
    Fetch an allow-listed upstream URL and re-emit it with reader-friendly headers.

    Query parameters: url (required), contentType, fileName, disposition.
    Only exact host:port matches against the allow-list are fetched, so this
    endpoint cannot be used as an open relay.
    """
    logger.info(f"blob proxy request (requestId={get_request_id(event)})")

    method = get_http_method(event) or "GET"
    if method not in ("GET", "HEAD"):
        return error_response(validation_error("Method not allowed"))

    upstream_url = get_query_param(event, "url")
    if not upstream_url:
        return error_response(validation_error("Missing url"))

    authority = upstream_authority(upstream_url)
    if authority is None:
        return error_response(validation_error("Invalid url"))
    if authority not in allowed_upstreams:
        logger.warning(f"Blob proxy refused upstream {authority}")
        return error_response(forbidden("Upstream not allowed"))

    content_type = get_query_param(event, "contentType")
    file_name = get_query_param(event, "fileName") or "file"
    disposition_param = (get_query_param(event, "disposition") or "inline").lower()
    disposition = "attachment" if disposition_param == "attachment" else "inline"

    upstream_headers = {"Accept-Encoding": "identity"}
    range_header = get_header(event, "range")
    if range_header:
        upstream_headers["Range"] = range_header

    try:
        with requests.request(
            method,
            upstream_url,
            headers=upstream_headers,
            stream=True,
            allow_redirects=True,
            timeout=REQUEST_TIMEOUT,
        ) as upstream:
            if upstream.status_code >= 400:
                text = upstream.text
                logger.warning(f"Blob upstream answered {upstream.status_code}")
                return error_response(
                    bad_gateway(text or f"Upstream failed ({upstream.status_code})")
                )

            headers = {
                "Content-Type": content_type
                or upstream.headers.get("content-type")
                or "application/octet-stream",
                "Content-Disposition": content_disposition(disposition, file_name),
                "Cache-Control": "no-store",
            }
            for name in PASSTHROUGH_HEADERS:
                value = upstream.headers.get(name)
                if value is not None:
                    headers[name] = value

            body = b"" if method == "HEAD" else _read_body(upstream)
            if body is None:
                logger.warning(f"Blob upstream body exceeds {MAX_PROXY_BODY_BYTES} bytes")
                return error_response(bad_gateway(BODY_TOO_LARGE))
            return binary_response(upstream.status_code, body, headers)

    except requests.RequestException as e:
        logger.error(f"Blob upstream request failed: {str(e)}", exc_info=True)
        return error_response(bad_gateway("Upstream request failed"))


def build_target_url(base_url: str, proxy_path: str, query_string: str) -> str:
    """Join the base URL with each path segment percent-encoded, plus the query."""
    segments = [quote(unquote(part), safe="") for part in proxy_path.split("/") if part]
    target = f"{base_url}/{'/'.join(segments)}"
    if query_string:
        target = f"{target}?{query_string}"
    return target


def handle_api_proxy(event: dict, resolver: BaseUrlResolver) -> dict:
    """
    Forward a request under /api/proxy/ to the backend's current base URL.

    Redirects are returned to the caller rather than followed.
    """
    logger.info(f"api proxy request (requestId={get_request_id(event)})")

    base_url = resolver.resolve_base_url()
    if not base_url:
        logger.error("API base URL could not be resolved")
        return error_response(internal("API base URL is not configured"))

    method = get_http_method(event) or "GET"
    proxy_path = (event.get("pathParameters") or {}).get("proxy") or ""
    target = build_target_url(base_url, proxy_path, get_raw_query_string(event))

    headers = {
        name: value
        for name, value in get_headers(event).items()
        if name.lower() not in STRIPPED_REQUEST_HEADERS
    }
    try:
        body = None if method in ("GET", "HEAD") else get_raw_body(event)
    except ValueError:
        logger.warning("Request body is not valid base64")
        return error_response(invalid_body("Invalid request body"))

    try:
        with requests.request(
            method,
            target,
            headers=headers,
            data=body,
            stream=True,
            allow_redirects=False,
            timeout=REQUEST_TIMEOUT,
        ) as upstream:
            response_headers = {
                name: value
                for name, value in upstream.headers.items()
                if name.lower() not in STRIPPED_RESPONSE_HEADERS
            }
            response_headers["Access-Control-Allow-Origin"] = CORS_HEADERS[
                "Access-Control-Allow-Origin"
            ]
            payload = b"" if method == "HEAD" else _read_body(upstream)
            if payload is None:
                logger.warning(f"API upstream body exceeds {MAX_PROXY_BODY_BYTES} bytes")
                return error_response(bad_gateway(BODY_TOO_LARGE))
            return binary_response(upstream.status_code, payload, response_headers)

    except requests.RequestException as e:
        logger.error(f"API upstream request failed: {str(e)}", exc_info=True)
        return error_response(bad_gateway("Upstream request failed"))


def blob_proxy_handler(event, context):
    """Lambda handler for GET/HEAD /api/blob"""
    if is_preflight(event):
        return preflight_response()
    try:
        settings = config.get_settings()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {str(e)}", exc_info=True)
        return error_response(internal("Server is not configured"))
    return handle_blob_proxy(event, settings.allowed_upstreams)


def api_proxy_handler(event, context):
    """Lambda handler for ANY /api/proxy/{proxy+}"""
    if is_preflight(event):
        return preflight_response()
    try:
        settings = config.get_settings()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {str(e)}", exc_info=True)
        return error_response(internal("Server is not configured"))
    return handle_api_proxy(
        event, default_resolver(settings.api_base_url_file, settings.api_base_url)
    )
