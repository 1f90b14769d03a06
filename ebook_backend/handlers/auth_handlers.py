"""
Lambda handlers for account operations (signup, login, me)

Signup and login are public; me requires a bearer token.
"""

from __future__ import annotations

import logging
import uuid

# Support both Lambda deployment and local development
try:
    # Lambda deployment
    import config
    from utils.apigw import get_headers, get_request_id
    from utils.auth import role_for_email
    from utils.dynamodb import utc_timestamp
    from utils.errors import conflict, internal, unauthorized
    from utils.response import api_response, error_response, serialize_user
    from utils.validation import LoginRequest, SignupRequest, parse_request
except ImportError:
    # Local development
    import ebook_backend.config as config
    from ebook_backend.utils.apigw import get_headers, get_request_id
    from ebook_backend.utils.auth import role_for_email
    from ebook_backend.utils.dynamodb import utc_timestamp
    from ebook_backend.utils.errors import conflict, internal, unauthorized
    from ebook_backend.utils.response import api_response, error_response, serialize_user
    from ebook_backend.utils.validation import LoginRequest, SignupRequest, parse_request

logger = logging.getLogger()
logger.setLevel(logging.INFO)

INVALID_CREDENTIALS = "Invalid email or password"


def handle_signup(event: dict, services: config.Services) -> dict:
    """
    Create an account and return a token for it.

    Expects JSON body with email, name and password. The email is trimmed and
    lowercased before the existence check and the write. The check is
    read-then-write; two concurrent signups for one email can both pass it.
    """
    logger.info(f"signup request (requestId={get_request_id(event)})")

    request, error = parse_request(event, SignupRequest)
    if error:
        return error_response(error)

    email = request.email.strip().lower()
    name = request.name.strip()

    try:
        if services.users.get_by_email(email):
            logger.warning("Signup rejected: email already registered")
            return error_response(conflict("Email already registered"))

        item = {
            "userId": str(uuid.uuid4()),
            "email": email,
            "name": name,
            "role": role_for_email(email, services.settings.admin_email),
            "passwordHash": services.credentials.hash_password(request.password),
            "createdAt": utc_timestamp(),
        }
        services.users.put(item)

        token = services.credentials.issue_token(
            sub=item["userId"], email=email, name=name, role=item["role"]
        )

        logger.info(f"signup success: {item['userId']} (role={item['role']})")
        return api_response(201, {"token": token, "user": serialize_user(item)})

    except Exception as e:
        logger.error(f"Error signing up: {str(e)}", exc_info=True)
        return error_response(internal("Failed to sign up"))


def handle_login(event: dict, services: config.Services) -> dict:
    """
    Exchange email and password for a token.

    Unknown email and wrong password produce the same 401 response.
    """
    logger.info(f"login request (requestId={get_request_id(event)})")

    request, error = parse_request(event, LoginRequest)
    if error:
        return error_response(error)

    email = request.email.strip().lower()

    try:
        item = services.users.get_by_email(email)
        if not item or not services.credentials.verify_password(
            request.password, item.get("passwordHash", "")
        ):
            logger.warning("Login rejected: invalid credentials")
            return error_response(unauthorized(INVALID_CREDENTIALS))

        token = services.credentials.issue_token(
            sub=item["userId"], email=item["email"], name=item["name"], role=item["role"]
        )

        logger.info(f"login success: {item['userId']}")
        return api_response(200, {"token": token, "user": serialize_user(item)})

    except Exception as e:
        logger.error(f"Error logging in: {str(e)}", exc_info=True)
        return error_response(internal("Failed to login"))


def handle_me(event: dict, services: config.Services) -> dict:
    """Return the caller's identity straight from the token claims."""
    logger.info(f"me request (requestId={get_request_id(event)})")

    claims, error = services.credentials.require_auth(get_headers(event))
    if error:
        return error_response(error)

    return api_response(200, {"user": claims.to_user()})


def signup_handler(event, context):
    """Lambda handler for POST /auth/signup"""
    return config.invoke(handle_signup, event)


def login_handler(event, context):
    """Lambda handler for POST /auth/login"""
    return config.invoke(handle_login, event)


def me_handler(event, context):
    """Lambda handler for GET /auth/me"""
    return config.invoke(handle_me, event)
