"""Admin login and bearer-token checks for mutating endpoints."""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

TOKEN_SALT = "cinefree-admin-session"


class InvalidCredentials(Exception):
    """Raised when a login attempt does not match the admin credentials."""


class Unauthorized(Exception):
    """Raised when a request does not carry a valid admin token."""


class AuthGate:
    """Single-admin authentication backed by signed, expiring tokens.

    The token payload only names the admin user; the signature and its
    timestamp are what make it valid. There is one admin account, so no
    per-user scoping or revocation exists beyond rotating the secret key.
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        secret_key: str,
        max_age: int,
    ) -> None:
        self.username = username
        self._password = password
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)

    def login(self, username: str, password: str) -> str:
        """Return a fresh token when both values match the admin credentials."""

        user_ok = hmac.compare_digest(username.encode("utf-8"), self.username.encode("utf-8"))
        password_ok = hmac.compare_digest(password.encode("utf-8"), self._password.encode("utf-8"))
        if not (user_ok and password_ok):
            logger.info("Rejected login attempt")
            raise InvalidCredentials("Invalid credentials")
        return self._serializer.dumps({"sub": self.username})

    def authorize(self, header: Optional[str]) -> None:
        """Validate an ``Authorization`` header value or raise :class:`Unauthorized`."""

        scheme, _, token = (header or "").partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise Unauthorized("Unauthorized")
        try:
            payload = self._serializer.loads(token.strip(), max_age=self.max_age)
        except BadSignature as exc:  # also covers SignatureExpired
            raise Unauthorized("Unauthorized") from exc
        if not isinstance(payload, dict) or payload.get("sub") != self.username:
            raise Unauthorized("Unauthorized")
