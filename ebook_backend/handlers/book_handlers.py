"""
Lambda handlers for book operations available to any signed-in user (upload, list, get)

Book bytes live in S3 under books/{bookId}/{safeFileName}; metadata lives in the
books table. Upload writes the object before the record and does not roll back
the object if the record write fails.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import uuid

# Support both Lambda deployment and local development
try:
    # Lambda deployment
    import config
    from utils.apigw import get_headers, get_query_param, get_request_id
    from utils.dynamodb import utc_timestamp
    from utils.errors import gone, internal, invalid_body, not_found, payload_too_large, validation_error
    from utils.response import api_response, error_response
    from utils.sanitize import build_s3_key, content_disposition, response_content_type
    from utils.validation import UploadRequest, get_path_param, parse_request
except ImportError:
    # Local development
    import ebook_backend.config as config
    from ebook_backend.utils.apigw import get_headers, get_query_param, get_request_id
    from ebook_backend.utils.dynamodb import utc_timestamp
    from ebook_backend.utils.errors import (
        gone,
        internal,
        invalid_body,
        not_found,
        payload_too_large,
        validation_error,
    )
    from ebook_backend.utils.response import api_response, error_response
    from ebook_backend.utils.sanitize import (
        build_s3_key,
        content_disposition,
        response_content_type,
    )
    from ebook_backend.utils.validation import UploadRequest, get_path_param, parse_request

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def _decode_file(file_base64: str) -> bytes | None:
    try:
        return base64.b64decode(file_base64, validate=True)
    except (binascii.Error, ValueError):
        return None


def _parse_limit(raw: str | None) -> tuple[int | None, dict | None]:
    """
    Parse and clamp the ``limit`` query parameter.

    Returns:
        tuple: (limit, error_response) - limit is None when not supplied
    """
    if raw is None or not raw.strip():
        return None, None
    try:
        value = int(raw.strip())
    except ValueError:
        return None, error_response(validation_error("limit must be an integer"))
    return max(config.MIN_LIST_LIMIT, min(config.MAX_LIST_LIMIT, value)), None


def _parse_last_key(raw: str | None) -> tuple[dict | None, dict | None]:
    if not raw:
        return None, None
    try:
        key = json.loads(raw)
    except json.JSONDecodeError:
        key = None
    if not isinstance(key, dict) or not key:
        return None, error_response(validation_error("lastKey must be a JSON-encoded key"))
    return key, None


def _matches(item: dict, q: str, genre: str) -> bool:
    if q:
        text = f"{item.get('title', '')} {item.get('author', '')} {item.get('genre') or ''}"
        if q not in text.lower():
            return False
    if genre and (item.get("genre") or "").lower() != genre:
        return False
    return True


def handle_upload(event: dict, services: config.Services) -> dict:
    """
    Store an uploaded e-book and create its record.

    Expects JSON body with title, author, optional genre, fileName, contentType
    and fileBase64. Returns the created record with status 201.
    """
    logger.info(f"uploadBook request (requestId={get_request_id(event)})")

    claims, error = services.credentials.require_auth(get_headers(event))
    if error:
        return error_response(error)

    request, error = parse_request(event, UploadRequest)
    if error:
        return error_response(error)

    data = _decode_file(request.fileBase64)
    if data is None:
        logger.warning("Upload rejected: fileBase64 is not valid base64")
        return error_response(invalid_body("fileBase64 must be valid base64"))
    if not data:
        return error_response(invalid_body("Empty file"))
    if len(data) > config.MAX_UPLOAD_BYTES:
        logger.warning(f"Upload rejected: {len(data)} bytes exceeds limit")
        return error_response(
            payload_too_large(f"File too large (max {config.MAX_UPLOAD_BYTES} bytes)")
        )

    book_id = str(uuid.uuid4())
    s3_key = build_s3_key(book_id, request.fileName)

    item = {
        "bookId": book_id,
        "title": request.title,
        "author": request.author,
        "s3Key": s3_key,
        "contentType": request.contentType,
        "originalFileName": request.fileName,
        "uploadedAt": utc_timestamp(),
    }
    if request.genre is not None:
        item["genre"] = request.genre

    try:
        services.objects.put(s3_key, data, request.contentType)
        logger.info(f"Stored {len(data)} bytes at {s3_key}")

        # No compensating delete: a failure here leaves the object orphaned
        services.books.put(item)

        logger.info(f"uploadBook success: {book_id} by {claims.sub}")
        return api_response(201, item)

    except Exception as e:
        logger.error(f"Error uploading book: {str(e)}", exc_info=True)
        return error_response(internal("Failed to upload book"))


def handle_list(event: dict, services: config.Services) -> dict:
    """
    Return one page of books, newest first.

    Query parameters q and genre filter the fetched page only, so a filtered
    page can hold fewer than ``limit`` items while later pages still match.
    """
    logger.info(f"listBooks request (requestId={get_request_id(event)})")

    _, error = services.credentials.require_auth(get_headers(event))
    if error:
        return error_response(error)

    limit, error_resp = _parse_limit(get_query_param(event, "limit"))
    if error_resp:
        return error_resp

    last_key, error_resp = _parse_last_key(get_query_param(event, "lastKey"))
    if error_resp:
        return error_resp

    q = (get_query_param(event, "q") or "").strip().lower()
    genre = (get_query_param(event, "genre") or "").strip().lower()

    try:
        items, next_key = services.books.scan_page(limit=limit, exclusive_start_key=last_key)

        items = [item for item in items if _matches(item, q, genre)]
        items.sort(key=lambda item: item.get("uploadedAt", ""), reverse=True)

        logger.info(f"Returning {len(items)} books (more={next_key is not None})")
        return api_response(200, {"items": items, "lastKey": next_key})

    except Exception as e:
        logger.error(f"Error listing books: {str(e)}", exc_info=True)
        return error_response(internal("Failed to list books"))


def handle_get(event: dict, services: config.Services) -> dict:
    """
    Return a book record with a presigned download URL.

    Expects book ID in path parameter 'bookId' and an optional ``disposition``
    query parameter (``inline`` or ``attachment``, default ``attachment``).
    A record whose object has disappeared answers 410 so the caller re-uploads.
    """
    logger.info(f"getBook request (requestId={get_request_id(event)})")

    _, error = services.credentials.require_auth(get_headers(event))
    if error:
        return error_response(error)

    book_id, error = get_path_param(event, "bookId")
    if error:
        return error_response(error)

    disposition_param = (get_query_param(event, "disposition") or "").strip().lower()
    disposition = "inline" if disposition_param == "inline" else "attachment"

    try:
        item = services.books.get(book_id)
        if not item:
            logger.warning(f"Book not found: {book_id}")
            return error_response(not_found("Book not found"))

        if not services.objects.exists(item["s3Key"]):
            logger.warning(f"Object missing for book {book_id}: {item['s3Key']}")
            return error_response(gone("File missing in storage. Please re-upload."))

        content_type = response_content_type(
            item.get("originalFileName", ""), item.get("contentType", "")
        )
        expires_in = services.settings.presign_expires_seconds
        url = services.objects.presign_get(
            item["s3Key"],
            content_type=content_type,
            content_disposition=content_disposition(
                disposition, item.get("originalFileName", "")
            ),
            expires_in=expires_in,
        )

        return api_response(
            200,
            {
                "item": item,
                "url": url,
                "expiresInSeconds": expires_in,
                "contentType": content_type,
            },
        )

    except Exception as e:
        logger.error(f"Error getting book {book_id}: {str(e)}", exc_info=True)
        return error_response(internal("Failed to get book"))


def upload_handler(event, context):
    """Lambda handler for POST /books"""
    return config.invoke(handle_upload, event)


def list_handler(event, context):
    """Lambda handler for GET /books"""
    return config.invoke(handle_list, event)


def get_book_handler(event, context):
    """Lambda handler for GET /books/{bookId}"""
    return config.invoke(handle_get, event)
