"""
Admin capability tokens.

An admin exchanges the station password for a short-lived HMAC-SHA256
signed token (JWT-shaped: header.payload.signature, base64url without
padding). Only the skip operation requires one.
"""

import base64
import binascii
import hashlib
import hmac
import json
import os
import threading
import time
from typing import Any, Optional

from loguru import logger

from loopcast.errors import AuthorizationError

ADMIN_SUBJECT = "admin"
DEFAULT_TOKEN_TTL = 3600  # 1 hour

_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _sign(data: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), data.encode("ascii"), hashlib.sha256)
    return _b64encode(digest.digest())


def get_signing_secret() -> Optional[str]:
    """Get the token signing key from LOOPCAST_SIGNING_SECRET."""
    return os.environ.get("LOOPCAST_SIGNING_SECRET") or None


def get_admin_password() -> Optional[str]:
    """Get the admin password from ADMIN_PASSWORD."""
    return os.environ.get("ADMIN_PASSWORD") or None


def issue_token(
    secret: str,
    ttl_seconds: int = DEFAULT_TOKEN_TTL,
    now: Optional[float] = None,
) -> str:
    """Create a signed admin token.

    Args:
        secret: HMAC signing key
        ttl_seconds: Lifetime of the token
        now: Issue time as a unix timestamp (default: current time)

    Returns:
        Token string
    """
    issued_at = int(now if now is not None else time.time())
    payload = {"sub": ADMIN_SUBJECT, "iat": issued_at, "exp": issued_at + ttl_seconds}
    header_part = _b64encode(json.dumps(_HEADER, separators=(",", ":")).encode())
    payload_part = _b64encode(json.dumps(payload, separators=(",", ":")).encode())
    signing_input = f"{header_part}.{payload_part}"
    return f"{signing_input}.{_sign(signing_input, secret)}"


def verify_token(
    token: Optional[str],
    secret: Optional[str],
    now: Optional[float] = None,
) -> dict[str, Any]:
    """Verify an admin token and return its payload.

    The signature is compared in constant time before any payload field is
    trusted. Every structural or signature failure raises the same
    'invalid_token' code.

    Raises:
        AuthorizationError: 'missing_token', 'invalid_token' or 'expired_token'
    """
    if not token:
        raise AuthorizationError("missing_token")
    if not secret:
        logger.warning("Token presented but LOOPCAST_SIGNING_SECRET is not set")
        raise AuthorizationError("invalid_token")

    parts = token.split(".")
    if len(parts) != 3 or not token.isascii():
        raise AuthorizationError("invalid_token")

    header_part, payload_part, signature = parts
    expected = _sign(f"{header_part}.{payload_part}", secret)
    if not hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii")):
        raise AuthorizationError("invalid_token")

    try:
        header = json.loads(_b64decode(header_part))
        payload = json.loads(_b64decode(payload_part))
    except (binascii.Error, ValueError, UnicodeDecodeError):
        raise AuthorizationError("invalid_token") from None

    if not isinstance(header, dict) or header.get("alg") != _HEADER["alg"]:
        raise AuthorizationError("invalid_token")
    if not isinstance(payload, dict) or payload.get("sub") != ADMIN_SUBJECT:
        raise AuthorizationError("invalid_token")

    expires_at = payload.get("exp")
    if not isinstance(expires_at, (int, float)):
        raise AuthorizationError("invalid_token")
    current = now if now is not None else time.time()
    if expires_at <= current:
        raise AuthorizationError("expired_token")

    return payload


def check_admin_password(password: Optional[str], expected: Optional[str]) -> bool:
    """Compare a login password with the configured one in constant time."""
    if not password or not expected:
        return False
    return hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))


class LoginRateLimiter:
    """Fixed-window login attempt counter per client key.

    In-memory and per process; counts reset on restart.
    """

    def __init__(self, max_attempts: int = 5, window_seconds: int = 15 * 60):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._attempts: dict[str, tuple[int, float]] = {}  # key -> (count, reset_at)
        self._lock = threading.Lock()

    def hit(self, key: str, now: Optional[float] = None) -> bool:
        """Record an attempt for ``key``.

        Returns:
            True if the caller is over the limit and must be refused
        """
        current = now if now is not None else time.time()
        with self._lock:
            self._prune(current)
            entry = self._attempts.get(key)
            if entry is None or current >= entry[1]:
                count, reset_at = 0, current + self.window_seconds
            else:
                count, reset_at = entry
            count += 1
            self._attempts[key] = (count, reset_at)
            return count > self.max_attempts

    def _prune(self, current: float) -> None:
        # Caller holds the lock
        expired = [key for key, (_, reset_at) in self._attempts.items() if current >= reset_at]
        for key in expired:
            del self._attempts[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._attempts)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()


def login(
    password: Optional[str],
    client_key: str,
    limiter: LoginRateLimiter,
    ttl_seconds: int = DEFAULT_TOKEN_TTL,
    now: Optional[float] = None,
) -> str:
    """Exchange the admin password for a token.

    Raises:
        AuthorizationError: 'rate_limited' or 'invalid_password'
    """
    if limiter.hit(client_key, now=now):
        logger.warning(f"Admin login rate limited for {client_key}")
        raise AuthorizationError("rate_limited")

    secret = get_signing_secret()
    if not secret or not check_admin_password(password, get_admin_password()):
        logger.warning(f"Failed admin login from {client_key}")
        raise AuthorizationError("invalid_password")

    logger.info(f"Issued admin token to {client_key}")
    return issue_token(secret, ttl_seconds=ttl_seconds, now=now)
