"""
Authentication and authorization utilities for the E-Book Library API

Provides password hashing (bcrypt), bearer-token issuance and verification
(PyJWT, HS256), and the ``require_auth`` guard used by every protected handler.
Tokens are self-contained; no session state is kept server-side.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Mapping

import bcrypt
import jwt

from .errors import ApiError, ErrorKind, unauthorized

logger = logging.getLogger()

JWT_ALGORITHM = "HS256"
ROLE_USER = "user"
ROLE_ADMIN = "admin"

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)
_REQUIRED_CLAIMS = ("sub", "email", "name", "role", "iat", "exp")

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class AuthClaims:
    """Identity carried inside a bearer token."""

    sub: str
    email: str
    name: str
    role: str
    iat: int | None = None
    exp: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_user(self) -> dict[str, str]:
        return {
            "userId": self.sub,
            "email": self.email,
            "name": self.name,
            "role": self.role,
        }


def get_bearer_token(headers: Mapping[str, Any] | None) -> str | None:
    """
    Extract the bearer token from request headers.

    Header names are matched case-insensitively, as is the ``Bearer`` prefix.

    Args:
        headers: API Gateway event headers (may be None)

    Returns:
        str: The token, or None if no well-formed Authorization header is present
    """
    if not headers:
        return None

    raw = None
    for name, value in headers.items():
        if name.lower() == "authorization":
            raw = value
            break
    if not raw or not isinstance(raw, str):
        return None

    match = _BEARER_RE.match(raw.strip())
    if not match:
        return None
    return match.group(1)


def role_for_email(email: str, admin_email: str) -> str:
    """Exactly one configured email is promoted to admin at signup."""
    if admin_email and email.strip().lower() == admin_email.strip().lower():
        return ROLE_ADMIN
    return ROLE_USER


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


class CredentialService:
    """Password hashing and token handling bound to one signing secret."""

    def __init__(self, secret: str, rounds: int = 10, ttl_seconds: int = 12 * 60 * 60):
        self._secret = secret
        self.rounds = rounds
        self.ttl_seconds = ttl_seconds

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt with the configured work factor."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """
        Verify a password against a stored bcrypt hash.

        A malformed stored hash is treated as a mismatch.
        """
        try:
            return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False

    def issue_token(
        self, sub: str, email: str, name: str, role: str, now: datetime | None = None
    ) -> str:
        """
        Sign a token carrying the user's identity.

        Args:
            sub: User ID
            email: Normalized email
            name: Display name
            role: ``user`` or ``admin``
            now: Issue time (defaults to the current UTC time)

        Returns:
            str: Encoded JWT valid for ``ttl_seconds``
        """
        issued_at = now or datetime.now(UTC)
        payload = {
            "sub": sub,
            "email": email,
            "name": name,
            "role": role,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(seconds=self.ttl_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def verify_token(
        self, token: str, now: datetime | None = None
    ) -> tuple[AuthClaims | None, ApiError | None]:
        """
        Verify signature, structure and expiry of a token.

        Args:
            token: Encoded JWT
            now: Verification time (defaults to the current UTC time)

        Returns:
            tuple: (claims, error) - If successful, error is None
        """
        invalid = ApiError(ErrorKind.UNAUTHORIZED, "Invalid or expired token")
        options: dict[str, Any] = {"require": list(_REQUIRED_CLAIMS)}
        if now is not None:
            # Expiry is checked below against the supplied clock
            options["verify_exp"] = False
            options["verify_iat"] = False

        try:
            payload = jwt.decode(
                token, self._secret, algorithms=[JWT_ALGORITHM], options=options
            )
        except jwt.PyJWTError as e:
            logger.info(f"Token rejected: {type(e).__name__}")
            return None, invalid

        if now is not None and int(now.timestamp()) >= int(payload["exp"]):
            logger.info("Token rejected: ExpiredSignatureError")
            return None, invalid

        if not all(isinstance(payload.get(c), str) for c in ("sub", "email", "name", "role")):
            logger.info("Token rejected: malformed identity claims")
            return None, invalid

        return (
            AuthClaims(
                sub=payload["sub"],
                email=payload["email"],
                name=payload["name"],
                role=payload["role"],
                iat=payload.get("iat"),
                exp=payload.get("exp"),
            ),
            None,
        )

    def require_auth(
        self, headers: Mapping[str, Any] | None, now: datetime | None = None
    ) -> tuple[AuthClaims | None, ApiError | None]:
        """
        Authenticate a request from its headers.

        Callers never learn whether the token was missing or bad; both return
        the same generic Unauthorized error.

        Returns:
            tuple: (claims, error) - If successful, error is None
        """
        token = get_bearer_token(headers)
        if not token:
            logger.warning("Missing Authorization Bearer token")
            return None, unauthorized()

        claims, error = self.verify_token(token, now=now)
        if error:
            logger.warning("Invalid or expired bearer token")
            return None, unauthorized()
        return claims, None
