#!/usr/bin/env python3
"""
Create the DynamoDB tables and S3 bucket the E-Book Library needs in LocalStack.

Usage:
    AWS_ENDPOINT_URL=http://localhost:4566 python3 bootstrap-localstack.py
    API_BASE_URL=http://localhost:4566/restapis/abc123/dev/_user_request_ python3 bootstrap-localstack.py

Configuration:
    TABLE_NAME, USERS_TABLE_NAME and BUCKET_NAME use the same names and defaults
    as the Lambda handlers. When API_BASE_URL is set, it is also written to the
    env file the same-origin API proxy reads (API_BASE_URL_FILE).
"""

import os
import sys

import boto3
from botocore.exceptions import ClientError
from dotenv import set_key

# Configuration from environment variables
ENDPOINT_URL = os.environ.get("AWS_ENDPOINT_URL", "http://localhost:4566")
REGION = os.environ.get("AWS_REGION", "us-east-1")
TABLE_NAME = os.environ.get("TABLE_NAME", "EBookLibraryBooks")
USERS_TABLE_NAME = os.environ.get("USERS_TABLE_NAME", "EBookLibraryUsers")
BUCKET_NAME = os.environ.get("BUCKET_NAME", "ebook-library-files")
API_BASE_URL = os.environ.get("API_BASE_URL")
API_BASE_URL_FILE = os.environ.get(
    "API_BASE_URL_FILE", os.path.join("infra", "localstack", "state", "ebook-library.env")
)


def create_table(dynamodb, name, key_name):
    """Create a string-keyed, on-demand table unless it already exists."""
    try:
        dynamodb.create_table(
            TableName=name,
            KeySchema=[{"AttributeName": key_name, "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": key_name, "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] != "ResourceInUseException":
            raise
        print(f"⏭️  Table {name} already exists")
        return

    dynamodb.get_waiter("table_exists").wait(TableName=name)
    print(f"✅ Created table {name} (key: {key_name})")


def create_bucket(s3, name):
    try:
        if REGION == "us-east-1":
            s3.create_bucket(Bucket=name)
        else:
            s3.create_bucket(
                Bucket=name, CreateBucketConfiguration={"LocationConstraint": REGION}
            )
    except ClientError as e:
        if e.response["Error"]["Code"] not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
            raise
        print(f"⏭️  Bucket {name} already exists")
        return

    print(f"✅ Created bucket {name}")


def write_api_base_url():
    os.makedirs(os.path.dirname(API_BASE_URL_FILE) or ".", exist_ok=True)
    open(API_BASE_URL_FILE, "a").close()
    set_key(API_BASE_URL_FILE, "API_BASE_URL", API_BASE_URL.rstrip("/"), quote_mode="never")
    print(f"📝 Wrote API_BASE_URL to {API_BASE_URL_FILE}")


def bootstrap():
    print(f"🔧 Bootstrapping E-Book Library resources at {ENDPOINT_URL} ({REGION})")

    dynamodb = boto3.client("dynamodb", endpoint_url=ENDPOINT_URL, region_name=REGION)
    s3 = boto3.client("s3", endpoint_url=ENDPOINT_URL, region_name=REGION)

    create_table(dynamodb, TABLE_NAME, "bookId")
    create_table(dynamodb, USERS_TABLE_NAME, "email")
    create_bucket(s3, BUCKET_NAME)

    if API_BASE_URL:
        write_api_base_url()

    print(f"\n{'='*60}")
    print("✅ Bootstrap complete!")
    print(f"   Books table: {TABLE_NAME}")
    print(f"   Users table: {USERS_TABLE_NAME}")
    print(f"   Bucket:      {BUCKET_NAME}")
    print(f"{'='*60}")


if __name__ == "__main__":
    try:
        bootstrap()
    except Exception as e:
        print(f"❌ Error: {str(e)}")
        sys.exit(1)
