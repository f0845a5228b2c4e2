"""
Cafeteria Queue — JWT validation

Tokens are issued by the identity provider; this service only decodes them.
"""
from typing import Any

from jose import jwt

from app.core.config import get_settings

settings = get_settings()


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT. Raises JWTError on failure."""
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
