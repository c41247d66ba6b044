"""
Access token issuing and decoding (python-jose, HS256 by default).

Claims: sub (email), user_id, role, plus iat/exp and a random jti so two
tokens issued to the same user in the same second still differ and can be
revoked independently.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backend.app.core.config import settings


def access_token_lifetime() -> timedelta:
    return timedelta(minutes=settings.access_token_expire_minutes)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign `data` into a bearer token.

    Example payload:
        {"sub": "manager@fleet.io", "user_id": 1, "role": "FleetManager",
         "iat": 1700000000, "exp": 1700001800, "jti": "9b1d..."}
    """
    issued_at = datetime.now(timezone.utc)
    claims = dict(data)
    claims.update({
        "iat": issued_at,
        "exp": issued_at + (expires_delta or access_token_lifetime()),
        "jti": uuid.uuid4().hex,
    })
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verified claims, or None for a bad signature, malformed or expired token."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def seconds_until_expiry(claims: Dict[str, Any]) -> int:
    """Remaining lifetime of a decoded token, at least 1 second."""
    exp = claims.get("exp")
    if exp is None:
        return int(access_token_lifetime().total_seconds())
    remaining = int(exp - datetime.now(timezone.utc).timestamp())
    return max(remaining, 1)
