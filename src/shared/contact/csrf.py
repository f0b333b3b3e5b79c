"""CSRF token generation and validation for the contact form.

Two modes are supported:

- ``shape`` (default): the token is generated and stored by the browser and
  echoed back in the ``X-CSRF-Token`` header. The server only checks that it
  has the expected length. This does not prove the request came from the
  site's own page; it only stops naive cross-site form posts that cannot set
  custom headers.
- ``signed``: the server issues an HS256 JWT bound to a session id that is
  also set as a cookie. Validation checks the signature, the expiry and that
  the token's session id matches the cookie.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

CSRF_HEADER = "X-CSRF-Token"
CSRF_SESSION_COOKIE = "csrf_session"
CSRF_TOKEN_LENGTH = 32
ALGORITHM = "HS256"

MODE_SHAPE = "shape"
MODE_SIGNED = "signed"


def generate_csrf_token() -> str:
    """Generate a random 32-character hex token (16 random bytes)."""
    return secrets.token_hex(CSRF_TOKEN_LENGTH // 2)


def generate_session_id() -> str:
    return str(uuid.uuid4())


class CsrfValidator:
    """Validates anti-forgery tokens sent with contact form submissions."""

    def __init__(
        self,
        mode: str = MODE_SHAPE,
        secret: Optional[str] = None,
        token_length: int = CSRF_TOKEN_LENGTH,
        ttl_seconds: int = 3600,
    ):
        if mode not in (MODE_SHAPE, MODE_SIGNED):
            raise ValueError(f"Unknown CSRF mode: {mode!r}")
        if mode == MODE_SIGNED and not secret:
            raise ValueError(
                "CONTACT_CSRF_SECRET is required for signed CSRF tokens. "
                "Please set it to a secure random string."
            )
        self.mode = mode
        self.secret = secret
        self.token_length = token_length
        self.ttl_seconds = ttl_seconds

    @property
    def is_signed(self) -> bool:
        return self.mode == MODE_SIGNED

    def issue(self, session_id: Optional[str] = None) -> str:
        """Create a token for a client to echo back on submission."""
        if not self.is_signed:
            return generate_csrf_token()
        if not session_id:
            raise ValueError("session_id is required for signed CSRF tokens")
        now = datetime.now(timezone.utc)
        claims = {
            "sid": session_id,
            "iat": now,
            "exp": now + timedelta(seconds=self.ttl_seconds),
            "type": "csrf",
        }
        return jwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def validate(self, token: Optional[str], session_id: Optional[str] = None) -> bool:
        """
        Check a token taken from the request header.

        Args:
            token: Header value, possibly None
            session_id: Value of the CSRF session cookie (signed mode only)

        Returns:
            True if the token is acceptable
        """
        if not token:
            return False
        if not self.is_signed:
            return len(token) == self.token_length
        return self._validate_signed(token, session_id)

    def _validate_signed(self, token: str, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            logging.info("Rejected expired CSRF token")
            return False
        except JWTError:
            return False
        if payload.get("type") != "csrf":
            return False
        expected = str(payload.get("sid", "")).encode("utf-8")
        return secrets.compare_digest(expected, session_id.encode("utf-8"))
