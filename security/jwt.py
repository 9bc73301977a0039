"""Bearer tokens for buyers and sellers.

Tokens are minted by the account service with a shared HS256 secret. This
service only needs to read them; ``create_access_token`` exists so scripts
and tests can produce tokens with the same claims.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from core.config import settings

BUYER_ROLE = "buyer"
SELLER_ROLE = "seller"
ACCESS_TOKEN_TYPE = "access"


def create_access_token(sub: str, role: str, extra: Dict[str, Any] | None = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)).timestamp()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access(token: str) -> Dict[str, Any]:
    """Verify signature and expiry. Raises ``jwt.PyJWTError`` on any problem."""
    payload = jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALG],
        options={"require": ["exp", "sub"]},
    )
    if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        raise jwt.InvalidTokenError("Not an access token")
    return payload
