"""
Lambda handlers for the E-Book Library API

This module serves as the entry point for all Lambda functions.
It re-exports handlers from their respective modules for Lambda function configuration.

Architecture:
- API Gateway -> Lambda -> DynamoDB (users and book metadata)
- API Gateway -> Lambda -> S3 (book bytes, presigned download URLs)
- Browser -> api_proxy_handler -> API Gateway (stable same-origin path)
- Browser -> blob_proxy_handler -> presigned S3 URL (in-browser reader)

Handlers:
1. signup_handler: Creates an account and returns a bearer token
2. login_handler: Exchanges email/password for a bearer token
3. me_handler: Returns the identity carried by the caller's token
4. upload_handler: Stores an uploaded PDF/EPUB and creates its record
5. list_handler: Lists one page of books with optional text/genre filtering
6. get_book_handler: Gets book metadata and a presigned S3 download URL
7. delete_book_handler: Deletes book from both S3 and DynamoDB (admin only)
8. blob_proxy_handler: Re-serves an allow-listed presigned URL with reader headers
9. api_proxy_handler: Forwards /api/proxy/* to the backend's current base URL
"""

# Re-export handlers for Lambda function configuration
# Support both local development (ebook_backend.X) and Lambda deployment (X)
try:
    # Lambda deployment (files are in root, not in ebook_backend/)
    from handlers.admin_handlers import delete_book_handler
    from handlers.auth_handlers import login_handler, me_handler, signup_handler
    from handlers.book_handlers import get_book_handler, list_handler, upload_handler
    from handlers.proxy_handlers import api_proxy_handler, blob_proxy_handler
    from config import get_services, get_settings
except ImportError:
    # Local development / testing (with ebook_backend package structure)
    from ebook_backend.handlers.admin_handlers import delete_book_handler
    from ebook_backend.handlers.auth_handlers import login_handler, me_handler, signup_handler
    from ebook_backend.handlers.book_handlers import (
        get_book_handler,
        list_handler,
        upload_handler,
    )
    from ebook_backend.handlers.proxy_handlers import api_proxy_handler, blob_proxy_handler
    from ebook_backend.config import get_services, get_settings

# Make handlers available at module level for Lambda
__all__ = [
    "signup_handler",
    "login_handler",
    "me_handler",
    "upload_handler",
    "list_handler",
    "get_book_handler",
    "delete_book_handler",
    "blob_proxy_handler",
    "api_proxy_handler",
    # Also export config accessors for tests
    "get_settings",
    "get_services",
]
