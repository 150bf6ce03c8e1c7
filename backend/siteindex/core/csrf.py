"""
CSRF protection.

Double-submit tokens: the client receives a random token and a cookie
holding its HMAC-SHA256 signature under ``SECRET_KEY``. State-changing
requests must echo the token in the ``X-CSRF-Token`` header; the request is
accepted only when the header token signs to the cookie value.
"""

import hashlib
import hmac
import secrets
from typing import Optional

CSRF_COOKIE_NAME = "csrf-token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_TOKEN_BYTES = 32
CSRF_COOKIE_MAX_AGE = 24 * 60 * 60
PROTECTED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class CSRFProtection:
    """Issues and verifies signed double-submit tokens."""

    def __init__(self, secret_key: str):
        if not secret_key:
            raise ValueError("CSRF secret key is required")
        self._secret = secret_key.encode("utf-8")

    def generate_token(self) -> str:
        return secrets.token_hex(CSRF_TOKEN_BYTES)

    def sign(self, token: str) -> str:
        return hmac.new(self._secret, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def issue(self) -> tuple:
        """Return ``(token, cookie_value)`` for a new client."""
        token = self.generate_token()
        return token, self.sign(token)

    def validate(self, submitted: Optional[str], cookie_value: Optional[str]) -> bool:
        if not submitted or not cookie_value:
            return False
        return hmac.compare_digest(self.sign(submitted), cookie_value)

    @staticmethod
    def needs_protection(method: str) -> bool:
        return method.upper() in PROTECTED_METHODS
