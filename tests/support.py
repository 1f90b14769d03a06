"""
Test support: in-memory stand-ins for the DynamoDB tables and S3 clients,
plus helpers for building API Gateway events.
"""

import base64
import copy
import json
from unittest.mock import Mock
from urllib.parse import parse_qs, quote, unquote, urlencode, urlparse

from botocore.exceptions import ClientError
from requests.structures import CaseInsensitiveDict

TEST_SECRET = "test-signing-secret"
ADMIN_EMAIL = "admin@example.com"
TEST_BUCKET = "test-bucket"


class FakeTable:
    """Dict-backed DynamoDB Table resource with insertion-ordered scans."""

    def __init__(self, key_name):
        self.key_name = key_name
        self.items = {}

    def get_item(self, Key):
        item = self.items.get(Key[self.key_name])
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def put_item(self, Item):
        self.items[Item[self.key_name]] = copy.deepcopy(Item)
        return {}

    def delete_item(self, Key):
        self.items.pop(Key[self.key_name], None)
        return {}

    def scan(self, Limit=None, ExclusiveStartKey=None):
        keys = list(self.items)
        start = 0
        if ExclusiveStartKey:
            start = keys.index(ExclusiveStartKey[self.key_name]) + 1
        page_keys = keys[start:] if Limit is None else keys[start:start + Limit]
        response = {"Items": [copy.deepcopy(self.items[k]) for k in page_keys]}
        if page_keys and start + len(page_keys) < len(keys):
            response["LastEvaluatedKey"] = {self.key_name: page_keys[-1]}
        return response


def missing_object_error(operation="HeadObject"):
    return ClientError(
        {
            "Error": {"Code": "404", "Message": "Not Found"},
            "ResponseMetadata": {"HTTPStatusCode": 404},
        },
        operation,
    )


class FakeS3Client:
    """Keeps objects in memory and hands out fake presigned URLs that resolve to them."""

    def __init__(self, endpoint="http://localhost:4566"):
        self.endpoint = endpoint
        self.objects = {}
        self.presign_calls = []

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[(Bucket, Key)] = {"Body": bytes(Body), "ContentType": ContentType}
        return {}

    def head_object(self, Bucket, Key):
        obj = self.objects.get((Bucket, Key))
        if obj is None:
            raise missing_object_error()
        return {"ContentLength": len(obj["Body"]), "ContentType": obj["ContentType"]}

    def delete_object(self, Bucket, Key):
        self.objects.pop((Bucket, Key), None)
        return {}

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self.presign_calls.append(
            {"ClientMethod": ClientMethod, "Params": Params, "ExpiresIn": ExpiresIn}
        )
        query = urlencode(
            {
                "response-content-type": Params.get("ResponseContentType", ""),
                "response-content-disposition": Params.get("ResponseContentDisposition", ""),
                "X-Amz-Expires": ExpiresIn,
                "X-Amz-Signature": "fake",
            }
        )
        return f"{self.endpoint}/{Params['Bucket']}/{quote(Params['Key'])}?{query}"

    def fetch(self, url):
        """Resolve a URL produced by generate_presigned_url back to (body, query)."""
        parsed = urlparse(url)
        bucket, key = unquote(parsed.path).lstrip("/").split("/", 1)
        return self.objects[(bucket, key)]["Body"], parse_qs(parsed.query)


def create_mock_event(
    method="GET",
    token=None,
    path_params=None,
    query=None,
    body=None,
    headers=None,
):
    """Create a mock API Gateway (REST proxy) event

    Args:
        method: HTTP method
        token: Bearer token placed in the Authorization header
        path_params: Path parameters dict
        query: Query string parameters dict
        body: Request body (dict is JSON-encoded, str is used as is)
        headers: Extra request headers

    Returns:
        dict: Mock API Gateway event
    """
    event = {
        "httpMethod": method,
        "headers": dict(headers or {}),
        "requestContext": {"requestId": "test-request-id"},
        "pathParameters": path_params,
        "queryStringParameters": query,
    }
    if token:
        event["headers"]["Authorization"] = f"Bearer {token}"
    if body is not None:
        event["body"] = json.dumps(body) if isinstance(body, (dict, list)) else body
    return event


def token_for(credentials, user_id="user-123", email="reader@example.com", name="Reader", role="user"):
    return credentials.issue_token(sub=user_id, email=email, name=name, role=role)


def encode_file(data):
    return base64.b64encode(data).decode("ascii")


def mock_upstream(status_code=200, headers=None, chunks=(b"",), text=""):
    """Mock requests.Response usable as a context manager with a streamed raw body"""
    response = Mock()
    response.status_code = status_code
    response.headers = CaseInsensitiveDict(headers or {})
    response.text = text
    response.raw.stream.return_value = iter(chunks)
    response.__enter__ = Mock(return_value=response)
    response.__exit__ = Mock(return_value=False)
    return response
