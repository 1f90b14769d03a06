"""
DynamoDB utilities for the E-Book Library API

Thin wrappers over the users and books tables. Items are plain dicts; errors
from boto3 (botocore ClientError) propagate to the calling handler.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mypy_boto3_dynamodb.service_resource import Table


def utc_timestamp() -> str:
    """ISO 8601 UTC timestamp with fixed millisecond precision, so string order is time order."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class UserStore:
    """Users table, keyed by normalized email."""

    def __init__(self, table: "Table"):
        self.table = table

    def get_by_email(self, email: str) -> dict | None:
        response = self.table.get_item(Key={"email": email})
        return response.get("Item")

    def put(self, item: dict[str, Any]) -> None:
        # Last write wins by key; uniqueness is checked by the caller beforehand
        self.table.put_item(Item=item)


class BookStore:
    """Books table, keyed by bookId."""

    def __init__(self, table: "Table"):
        self.table = table

    def get(self, book_id: str) -> dict | None:
        response = self.table.get_item(Key={"bookId": book_id})
        return response.get("Item")

    def put(self, item: dict[str, Any]) -> None:
        self.table.put_item(Item=item)

    def delete(self, book_id: str) -> None:
        self.table.delete_item(Key={"bookId": book_id})

    def scan_page(
        self, limit: int | None = None, exclusive_start_key: dict | None = None
    ) -> tuple[list[dict], dict | None]:
        """
        Fetch a single scan page.

        Args:
            limit: Maximum number of items the store should evaluate
            exclusive_start_key: Continuation key from a previous page

        Returns:
            tuple: (items, last_evaluated_key) - last key is None at the end
        """
        params: dict[str, Any] = {}
        if limit is not None:
            params["Limit"] = limit
        if exclusive_start_key:
            params["ExclusiveStartKey"] = exclusive_start_key

        response = self.table.scan(**params)
        return response.get("Items", []), response.get("LastEvaluatedKey")
