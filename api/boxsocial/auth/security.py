from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from boxsocial.config import ACCESS_TOKEN_TTL_MINUTES, JWT_SECRET
from boxsocial.errors import Internal, Unauthenticated

ALGORITHM = "HS256"


def create_access_token(member_id: str, tenant_id: str, ttl_minutes: int | None = None) -> str:
    """Issue a member token.

    Tokens are normally minted by the studio's auth service; this exists for
    tooling and tests that need a valid identity.
    """
    if not JWT_SECRET:
        raise Internal("JWT secret not configured")
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=ttl_minutes or ACCESS_TOKEN_TTL_MINUTES)
    payload: dict[str, Any] = {
        "sub": member_id,
        "tenant_id": tenant_id,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    if not JWT_SECRET:
        raise Internal("JWT secret not configured")
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise Unauthenticated("Token expired") from exc
    except jwt.PyJWTError as exc:
        raise Unauthenticated("Invalid token") from exc
    if not isinstance(payload, dict):
        raise Unauthenticated("Invalid token")
    return payload
