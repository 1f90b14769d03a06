"""
File name and content-type helpers shared by the upload, download and proxy paths
"""

from __future__ import annotations

import re

DEFAULT_FILE_NAME = "ebook"

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_HEADER_BREAKING_CHARS = re.compile(r'["\r\n]')

_FORCED_CONTENT_TYPES = (
    (".pdf", "application/pdf"),
    (".epub", "application/epub+zip"),
)


def safe_file_name(file_name: str) -> str:
    """Storage-key-safe version of a user-supplied file name."""
    cleaned = _UNSAFE_KEY_CHARS.sub("_", file_name)
    return cleaned or DEFAULT_FILE_NAME


def build_s3_key(book_id: str, file_name: str) -> str:
    return f"books/{book_id}/{safe_file_name(file_name)}"


def header_safe_file_name(file_name: str) -> str:
    """Strip quotes and line breaks before embedding a name in a header value."""
    return _HEADER_BREAKING_CHARS.sub("", file_name)


def content_disposition(disposition: str, file_name: str) -> str:
    return f'{disposition}; filename="{header_safe_file_name(file_name)}"'


def response_content_type(file_name: str, stored_content_type: str) -> str:
    """
    Content type to serve a book with.

    Uploads that declared a generic type still render in the browser when the
    file name says PDF or EPUB.
    """
    lowered = (file_name or "").lower()
    for suffix, content_type in _FORCED_CONTENT_TYPES:
        if lowered.endswith(suffix):
            return content_type
    return stored_content_type
