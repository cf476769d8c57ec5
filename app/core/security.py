"""Password hashing, bearer tokens and realtime channel signing."""

import hashlib
import hmac
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ROLE_CLINIC = "clinic"
ROLE_PATIENT = "patient"

TOKEN_TYPE = "access"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a clinic password against its stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a clinic password with bcrypt."""
    return pwd_context.hash(password)


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a signed bearer token.

    Args:
        data: Claims to encode; ``sub`` and ``role`` identify the caller
        expires_delta: Lifetime, defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "iat": issued_at, "exp": issued_at + lifetime, "type": TOKEN_TYPE}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def issue_token(subject_id: UUID, role: str) -> str:
    """Bearer token for a clinic or patient."""
    return create_access_token({"sub": str(subject_id), "role": role})


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return the claims of a valid, unexpired access token, else None."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    return payload if payload.get("type") == TOKEN_TYPE else None


def sign_channel_subscription(socket_id: str, channel_name: str, channel_data: str | None = None) -> str:
    """
    Sign a realtime channel subscription.

    The grant is ``"{key}:{hex hmac-sha256}"`` over ``socket_id:channel_name``
    (plus ``:channel_data`` for presence channels), so the socket server can
    verify it with the shared secret.
    """
    parts = [socket_id, channel_name]
    if channel_data is not None:
        parts.append(channel_data)

    digest = hmac.new(settings.realtime_secret.encode(), ":".join(parts).encode(), hashlib.sha256)
    return f"{settings.realtime_key}:{digest.hexdigest()}"
