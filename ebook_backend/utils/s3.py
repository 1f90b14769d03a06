"""
S3 utilities for the E-Book Library API

ObjectStore wraps two S3 clients: one for runtime calls from inside the Lambda
and one configured with the public endpoint, used only to presign URLs that the
user's browser must be able to reach.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from botocore.exceptions import ClientError

if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def is_missing_object_error(error: ClientError) -> bool:
    """True if a ClientError means the object does not exist."""
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _MISSING_CODES or status == 404


class ObjectStore:
    def __init__(self, client: "S3Client", public_client: "S3Client", bucket: str):
        self.client = client
        self.public_client = public_client
        self.bucket = bucket

    def put(self, key: str, body: bytes, content_type: str) -> None:
        self.client.put_object(
            Bucket=self.bucket, Key=key, Body=body, ContentType=content_type
        )

    def exists(self, key: str) -> bool:
        """
        Metadata-only existence check for an object.

        Returns:
            bool: False if the store reports the object missing

        Raises:
            ClientError: For any failure other than a missing object
        """
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_missing_object_error(e):
                return False
            raise
        return True

    def delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)

    def presign_get(
        self, key: str, content_type: str, content_disposition: str, expires_in: int
    ) -> str:
        """
        Generate a time-limited GET URL scoped to one object.

        The response content type and disposition are baked into the signature.
        """
        return self.public_client.generate_presigned_url(
            "get_object",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "ResponseContentType": content_type,
                "ResponseContentDisposition": content_disposition,
            },
            ExpiresIn=expires_in,
        )
