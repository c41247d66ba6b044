"""
Request authentication.

`get_current_user` turns the bearer token into the caller's claims. The
claims dict (sub, user_id, role) is what services receive as `actor` for
their audit entries.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import is_token_revoked
from backend.app.db.session import get_db
from backend.app.models.user import User

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    Resolve the caller from the bearer token.

    Checks, in order: signature and expiry, user_id claim present, token not
    logged out, account still exists (all 401), account active (403). The
    role is re-read from the database so a role change applies to tokens
    already issued.
    """
    token = credentials.credentials

    claims = decode_access_token(token)
    if claims is None:
        raise _unauthorized("Could not validate credentials")

    user_id = claims.get("user_id")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    if await is_token_revoked(token):
        raise _unauthorized("Token has been revoked")

    user = await db.get(User, user_id)
    if not user:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")

    claims["role"] = user.role.value
    return claims
