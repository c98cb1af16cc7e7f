"""
Password hashing and bearer token helpers.

Passwords are stored as bcrypt hashes. Bearer tokens are HS256 JWTs whose
``sub`` claim is the restaurant id; the same token authenticates REST calls
and the dashboard WebSocket.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from qrar.core.config import get_settings

logger = logging.getLogger(__name__)


class InvalidTokenError(ValueError):
    """Raised when a bearer token is missing, malformed, expired or forged."""


@dataclass
class TokenClaims:
    restaurant_id: int
    email: Optional[str]
    expires_at: datetime


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(restaurant_id: int, email: str, expires_minutes: Optional[int] = None) -> str:
    """
    Issue a signed bearer token for a restaurant.

    Args:
        restaurant_id: Authenticated restaurant
        email: Restaurant login email, carried for display purposes
        expires_minutes: Lifetime override (defaults to JWT_EXPIRE_MINUTES)

    Returns:
        Encoded JWT string
    """
    settings = get_settings()
    lifetime = expires_minutes if expires_minutes is not None else settings.jwt_expire_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(restaurant_id),
        "email": email,
        "iat": now,
        "exp": now + timedelta(minutes=lifetime),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify a bearer token and return its claims.

    Raises:
        InvalidTokenError: If the token cannot be trusted
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise InvalidTokenError("Token has expired")
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise InvalidTokenError("Invalid token")

    try:
        restaurant_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidTokenError("Invalid token subject")

    return TokenClaims(
        restaurant_id=restaurant_id,
        email=payload.get("email"),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
