"""JWT handling for identities issued by the identity provider."""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from receipt_tracker.config import get_settings

settings = get_settings()


def create_access_token(user_id: str, expires_minutes: int | None = None) -> str:
    """Create a JWT access token whose subject is the user id."""
    minutes = expires_minutes if expires_minutes is not None else settings.jwt_expiration_minutes
    expire = datetime.now(UTC) + timedelta(minutes=minutes)
    to_encode = {
        "sub": str(user_id),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
