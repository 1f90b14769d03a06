"""
Pytest configuration for E2E tests against a running deployment.
"""

import os
import uuid

import pytest
import requests


@pytest.fixture(scope="session")
def api_url():
    """API URL for the backend; E2E tests are skipped when it is not set."""
    url = os.getenv("API_URL")
    if not url:
        pytest.skip("API_URL not provided. Point it at a deployed stage, e.g. a LocalStack REST API.")
    return url.rstrip("/")


@pytest.fixture(scope="session")
def admin_credentials():
    """Admin credentials from environment variables (the account matching ADMIN_EMAIL)."""
    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")

    if not email or not password:
        pytest.skip("Admin credentials not provided. Set ADMIN_EMAIL and ADMIN_PASSWORD environment variables.")

    return {"email": email, "password": password}


@pytest.fixture(scope="session")
def http():
    with requests.Session() as session:
        yield session


@pytest.fixture
def new_user(api_url, http):
    """Sign up a throwaway reader account and return its credentials and token."""
    email = f"e2e-{uuid.uuid4().hex[:12]}@example.com"
    password = "e2e-password"
    response = http.post(
        f"{api_url}/auth/signup",
        json={"email": email, "name": "E2E Reader", "password": password},
        timeout=30,
    )
    assert response.status_code == 201, response.text

    return {"email": email, "password": password, "token": response.json()["token"]}


@pytest.fixture
def admin_token(api_url, http, admin_credentials):
    """Log in as the admin account, signing it up first if it does not exist yet."""
    response = http.post(f"{api_url}/auth/login", json=admin_credentials, timeout=30)
    if response.status_code == 401:
        response = http.post(
            f"{api_url}/auth/signup",
            json={**admin_credentials, "name": "E2E Admin"},
            timeout=30,
        )
    assert response.status_code in (200, 201), response.text

    body = response.json()
    if body["user"]["role"] != "admin":
        pytest.skip("ADMIN_EMAIL does not match the deployment's configured admin")
    return body["token"]
