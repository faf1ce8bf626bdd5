from typing import Any

from jose import JWTError, jwt

from snf_admin.core.config import settings
from snf_admin.core.exceptions import AuthenticationError


def bearer_token(authorization: str) -> str:
    """Extract the token from an 'Authorization: Bearer <token>' header value."""
    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise AuthenticationError("Authorization header required")
    return token


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a backend-issued JWT.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        AuthenticationError: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise AuthenticationError(f"Invalid token: {str(e)}")


def create_access_token(claims: dict[str, Any]) -> str:
    """Sign claims with the shared secret (used by tests and local tooling)."""
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
