"""
Authentication API endpoints.

Login (username or email), current user, and logout. Every login attempt
is written to the audit log.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from bizos.app.db.session import get_db
from bizos.app.models.user import User
from bizos.app.schemas.auth import UserLogin, TokenResponse, UserResponse, LogoutResponse
from bizos.app.core.security import verify_password
from bizos.app.core.exceptions import AppException, AuthenticationError, InsufficientPermissionsError, NotFoundError
from bizos.app.core.jwt import create_access_token
from bizos.app.core.dependencies import get_current_user
from bizos.app.core.token_revocation import revoke_token
from bizos.app.services.audit import log_auth_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def _reject_login(
    db: AsyncSession,
    request: Request,
    user: Optional[User],
    attempted: str,
    reason: str,
    error: AppException
):
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_FAILED,
        user_id=user.id if user else None,
        username=user.username if user else attempted,
        ip_address=request.client.host if request.client else None,
        metadata={"reason": reason}
    )
    raise error


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange credentials for a bearer token.

    Unknown user and wrong password give the same 401 so usernames cannot
    be probed. A blocked account gets 403.
    """
    result = await db.execute(
        select(User).where(
            or_(User.username == credentials.username, User.email == credentials.username)
        )
    )
    user = result.scalar_one_or_none()

    if user is None:
        await _reject_login(
            db, request, None, credentials.username, "User not found",
            AuthenticationError("Invalid credentials")
        )
    if not verify_password(credentials.password, user.hashed_password):
        await _reject_login(
            db, request, user, credentials.username, "Invalid password",
            AuthenticationError("Invalid credentials")
        )
    if not user.is_active:
        await _reject_login(
            db, request, user, credentials.username, "Account is inactive/blocked",
            InsufficientPermissionsError("Inactive user account")
        )

    # Role and permissions are re-read from the database on every request
    access_token = create_access_token(
        data={"sub": user.username, "user_id": user.id, "role": user.role.value}
    )

    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        username=user.username,
        ip_address=request.client.host if request.client else None
    )

    return TokenResponse(
        access_token=access_token,
        user_id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        permissions=list(user.permissions or [])
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await db.get(User, current_user["user_id"])
    if not user:
        raise NotFoundError("User", current_user["user_id"])
    return UserResponse.model_validate(user)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke the token used for this request.

    Other sessions of the same user stay valid.
    """
    revoked = await revoke_token(current_user["token"], current_user["user_id"])

    await log_auth_event(
        db=db,
        action=AuditAction.TOKEN_REVOKED,
        user_id=current_user["user_id"],
        username=current_user["sub"],
        metadata={"revoked": revoked}
    )

    return LogoutResponse(
        success=revoked,
        message="Logged out" if revoked else "Token revocation unavailable"
    )
