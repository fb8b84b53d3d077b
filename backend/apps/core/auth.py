"""JWT authentication utilities."""
from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings

from apps.tenants.models import User

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def _encode(user: User, token_type: str, lifetime: timedelta, **claims) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "type": token_type,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        **claims,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token carrying tenant and e-mail claims."""
    return _encode(
        user,
        ACCESS_TOKEN,
        expires_delta or settings.JWT_ACCESS_TOKEN_LIFETIME,
        email=user.email,
        tenant_id=user.tenant_id,
    )


def create_refresh_token(user: User, expires_delta: timedelta | None = None) -> str:
    """Create a refresh token that can only be exchanged for new tokens."""
    return _encode(user, REFRESH_TOKEN, expires_delta or settings.JWT_REFRESH_TOKEN_LIFETIME)


def decode_token(token: str) -> dict | None:
    """Decode and validate a JWT token, returning None when invalid or expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    except jwt.InvalidTokenError:
        return None


def get_user_from_token(token: str, token_type: str = ACCESS_TOKEN) -> User | None:
    """Resolve the active user for a token of the expected type."""
    payload = decode_token(token)
    if payload is None or payload.get("type") != token_type:
        return None

    try:
        return User.objects.select_related("tenant").get(id=int(payload["sub"]), is_active=True)
    except (KeyError, ValueError, User.DoesNotExist):
        return None
