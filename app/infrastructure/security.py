"""Security helpers for response tokens and caregiver access tokens."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import secrets

from jose import JWTError, jwt

from app.config import get_settings

# 32 random bytes, hex encoded: 64 characters.
RESPONSE_TOKEN_BYTES = 32


@dataclass(frozen=True)
class IssuedToken:
    """One-time credential embedded in a check-in prompt."""

    token: str
    expires_at: datetime


class ResponseTokenIssuer:
    """Mint opaque response tokens. Persisting them is the caller's job."""

    def __init__(self, ttl: timedelta | None = None) -> None:
        self._ttl = ttl or timedelta(hours=get_settings().response_token_ttl_hours)

    def issue(self, now: datetime) -> IssuedToken:
        return IssuedToken(
            token=secrets.token_hex(RESPONSE_TOKEN_BYTES),
            expires_at=now + self._ttl,
        )


def decode_access_token(token: str) -> dict:
    """Decode a caregiver access token issued by the authentication service."""

    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Sign ``data`` the way the authentication service does.

    Used by operator tooling and tests; the engine itself never logs caregivers in.
    """

    settings = get_settings()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=30))
    return jwt.encode({**data, "exp": expire}, settings.secret_key, algorithm="HS256")


def verify_internal_key(candidate: str | None) -> bool:
    """Return ``True`` when ``candidate`` matches the configured internal key."""

    expected = get_settings().internal_api_key
    if not expected or not candidate:
        return False
    return secrets.compare_digest(candidate, expected)


__all__ = [
    "IssuedToken",
    "ResponseTokenIssuer",
    "create_access_token",
    "decode_access_token",
    "verify_internal_key",
]
