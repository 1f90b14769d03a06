"""
Shared fixtures wiring the handlers to in-memory stores.
"""

import pytest
from support import ADMIN_EMAIL, TEST_BUCKET, TEST_SECRET, FakeS3Client, FakeTable

from ebook_backend.config import Services, Settings
from ebook_backend.utils.auth import CredentialService
from ebook_backend.utils.dynamodb import BookStore, UserStore
from ebook_backend.utils.s3 import ObjectStore


@pytest.fixture
def settings():
    return Settings(
        jwt_secret=TEST_SECRET,
        admin_email=ADMIN_EMAIL,
        bucket_name=TEST_BUCKET,
        bcrypt_rounds=4,
    )


@pytest.fixture
def users_table():
    return FakeTable("email")


@pytest.fixture
def books_table():
    return FakeTable("bookId")


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def credentials():
    return CredentialService(secret=TEST_SECRET, rounds=4)


@pytest.fixture
def services(settings, users_table, books_table, s3_client, credentials):
    return Services(
        settings=settings,
        users=UserStore(users_table),
        books=BookStore(books_table),
        objects=ObjectStore(s3_client, s3_client, TEST_BUCKET),
        credentials=credentials,
    )
