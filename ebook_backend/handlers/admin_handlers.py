"""
Lambda handlers for admin operations (delete)

These handlers require the admin role carried in the bearer token.
"""

from __future__ import annotations

import logging

# Support both Lambda deployment and local development
try:
    # Lambda deployment
    import config
    from utils.apigw import get_headers, get_request_id
    from utils.errors import forbidden, internal, not_found
    from utils.response import error_response, no_content
    from utils.validation import get_path_param
except ImportError:
    # Local development
    import ebook_backend.config as config
    from ebook_backend.utils.apigw import get_headers, get_request_id
    from ebook_backend.utils.errors import forbidden, internal, not_found
    from ebook_backend.utils.response import error_response, no_content
    from ebook_backend.utils.validation import get_path_param

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def handle_delete(event: dict, services: config.Services) -> dict:
    """
    Delete a book's object and then its record.

    Expects book ID in path parameter 'bookId'. If the object delete fails the
    record is left in place and the caller gets a retryable 500.
    """
    logger.info(f"deleteBook request (requestId={get_request_id(event)})")

    claims, error = services.credentials.require_auth(get_headers(event))
    if error:
        return error_response(error)

    if not claims.is_admin:
        logger.warning(f"Non-admin user {claims.sub} attempted to delete a book")
        return error_response(forbidden("Forbidden: admin role required"))

    book_id, error = get_path_param(event, "bookId")
    if error:
        return error_response(error)

    try:
        item = services.books.get(book_id)
        if not item:
            logger.warning(f"Book not found: {book_id}")
            return error_response(not_found("Book not found"))

        logger.info(f"Deleting S3 object: {item['s3Key']}")
        services.objects.delete(item["s3Key"])

        services.books.delete(book_id)
        logger.info(f"deleteBook success: {book_id} by {claims.sub}")
        return no_content()

    except Exception as e:
        logger.error(f"Error deleting book {book_id}: {str(e)}", exc_info=True)
        return error_response(internal("Failed to delete book"))


def delete_book_handler(event, context):
    """Lambda handler for DELETE /books/{bookId}"""
    return config.invoke(handle_delete, event)
