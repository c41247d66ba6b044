"""
Authentication API endpoints.

Register, login, current user and logout. Tokens are stateless JWTs; logout
blacklists the presented token in Redis until it would have expired.
"""

import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.auth import UserRegister, UserLogin, TokenResponse, UserResponse
from backend.app.core.security import get_password_hash, verify_password
from backend.app.core.jwt import access_token_lifetime, create_access_token, seconds_until_expiry
from backend.app.core.dependencies import get_current_user, security
from backend.app.core.token_revocation import revoke_token
from backend.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(user: User) -> TokenResponse:
    lifetime = access_token_lifetime()
    return TokenResponse(
        access_token=create_access_token(
            {"sub": user.email, "user_id": user.id, "role": user.role.value},
            expires_delta=lifetime
        ),
        expires_in=int(lifetime.total_seconds()),
        user_id=user.id,
        name=user.name,
        email=user.email,
        role=user.role
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Create an account and sign it in.

    Emails are compared case-insensitively; a taken email is a 400.
    """
    email = user_data.email.lower()
    if (await db.execute(select(User.id).where(User.email == email))).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = User(
        email=email,
        name=user_data.name.strip(),
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        is_active=True,
        last_login_at=datetime.now(timezone.utc)
    )
    db.add(user)
    await db.flush()
    log_event(db, AuditAction.USER_CREATED, {"user_id": user.id, "sub": email}, "User", user.id,
              {"role": user.role.value})
    await db.commit()
    await db.refresh(user)

    logger.info("Registered user %s as %s", user.id, user.role.value)
    return _issue_token(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange email and password for a token.

    Every attempt is audited; failures do not reveal whether the email exists.
    """
    email = credentials.email.lower()
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        user_id = user.id if user else None
        log_event(db, AuditAction.LOGIN_FAILED, {"user_id": user_id, "sub": email}, "User", user_id,
                  {"reason": "invalid password" if user else "unknown email"})
        await db.commit()
        logger.warning("Failed login for %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        log_event(db, AuditAction.LOGIN_FAILED, {"user_id": user.id, "sub": email}, "User", user.id,
                  {"reason": "inactive account"})
        await db.commit()
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user account")

    user.last_login_at = datetime.now(timezone.utc)
    log_event(db, AuditAction.LOGIN_SUCCESS, {"user_id": user.id, "sub": email}, "User", user.id)
    await db.commit()

    return _issue_token(user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return UserResponse.model_validate(await db.get(User, current_user["user_id"]))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token. Other tokens of the same user stay valid."""
    await revoke_token(credentials.credentials, current_user["user_id"], seconds_until_expiry(current_user))
    log_event(db, AuditAction.TOKEN_REVOKED, current_user, "User", current_user["user_id"],
              {"jti": current_user.get("jti")})
    await db.commit()
