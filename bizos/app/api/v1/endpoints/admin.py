"""
Admin API Endpoints.

Staff user management and the audit trail. Every change is audited.
"""

from typing import Iterable, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from bizos.app.db.session import get_db
from bizos.app.models.user import User
from bizos.app.schemas.auth import UserResponse
from bizos.app.schemas.admin import (
    UserCreate, UserAccessUpdate, UserListResponse, UserStatusChange,
    AdminActionResponse, AuditTrailResponse, AuditLogResponse
)
from bizos.app.core.exceptions import InsufficientPermissionsError, NotFoundError, ValidationError
from bizos.app.core.guards import require_capability
from bizos.app.core.policy import Capability, ALL_CAPABILITIES
from bizos.app.core.security import get_password_hash
from bizos.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from bizos.app.services.audit import log_user_action, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


def _check_permissions(permissions: Iterable[str]) -> None:
    unknown = sorted(set(permissions) - ALL_CAPABILITIES)
    if unknown:
        raise ValidationError(
            f"Unknown permissions: {', '.join(unknown)}",
            details={"unknown": unknown}
        )


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: dict = Depends(require_capability(Capability.USERS_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a staff user with a role and optional explicit permissions.

    Raises:
        400: Unknown permission, or username/email already registered
    """
    _check_permissions(user_data.permissions)

    result = await db.execute(
        select(User).where(
            or_(User.username == user_data.username, User.email == user_data.email)
        )
    )
    existing_user = result.scalar_one_or_none()
    if existing_user:
        field = "username" if existing_user.username == user_data.username else "email"
        raise ValidationError(f"{field.capitalize()} already registered", details={"field": field})

    new_user = User(
        email=user_data.email,
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        permissions=list(user_data.permissions),
        is_active=True,
        is_superuser=False
    )
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    await log_user_action(
        db, admin, AuditAction.USER_CREATED, "User", new_user.id,
        metadata={"username": new_user.username, "role": new_user.role.value}
    )

    return UserResponse.model_validate(new_user)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    admin: dict = Depends(require_capability(Capability.USERS_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """List staff users, newest first."""
    total = (await db.execute(select(func.count(User.id)))).scalar()

    result = await db.execute(
        select(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.put("/users/{user_id}/access", response_model=UserResponse)
async def update_user_access(
    user_id: int,
    update: UserAccessUpdate,
    admin: dict = Depends(require_capability(Capability.USERS_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Change a user's role and/or explicit permission grants.

    Takes effect on the user's next request; issued tokens stay valid.
    """
    target_user = await _get_user(db, user_id)

    before = {"role": target_user.role.value, "permissions": list(target_user.permissions or [])}
    if update.role is not None:
        target_user.role = update.role
    if update.permissions is not None:
        _check_permissions(update.permissions)
        target_user.permissions = sorted(set(update.permissions))
    await db.commit()
    await db.refresh(target_user)

    await log_user_action(
        db, admin, AuditAction.USER_ACCESS_CHANGED, "User", target_user.id,
        metadata={
            "before": before,
            "after": {"role": target_user.role.value, "permissions": list(target_user.permissions)},
        }
    )

    return UserResponse.model_validate(target_user)


async def _set_active(
    db: AsyncSession,
    admin: dict,
    user_id: int,
    active: bool,
    reason: Optional[str]
) -> AdminActionResponse:
    target_user = await _get_user(db, user_id)

    if not active:
        if target_user.id == admin["user_id"]:
            raise ValidationError("Cannot block yourself")
        if target_user.is_superuser:
            raise InsufficientPermissionsError("Cannot block another admin user")

    if target_user.is_active == active:
        raise ValidationError(f"User is already {'active' if active else 'blocked'}")

    target_user.is_active = active
    await db.commit()

    # Revocation flags change only after the commit succeeds
    if active:
        await clear_user_token_revocation(user_id)
        action = AuditAction.USER_UNBLOCKED
    else:
        await revoke_all_user_tokens(user_id)
        action = AuditAction.USER_BLOCKED

    audit_log = await log_user_action(
        db, admin, action, "User", target_user.id,
        metadata={"username": target_user.username, "reason": reason}
    )

    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.username}' has been {'unblocked' if active else 'blocked'}",
        user_id=user_id,
        action=action,
        audit_log_id=audit_log.id
    )


@router.post("/users/{user_id}/block", response_model=AdminActionResponse)
async def block_user(
    user_id: int,
    request: UserStatusChange,
    admin: dict = Depends(require_capability(Capability.USERS_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate a user and revoke every token they hold."""
    return await _set_active(db, admin, user_id, active=False, reason=request.reason)


@router.post("/users/{user_id}/unblock", response_model=AdminActionResponse)
async def unblock_user(
    user_id: int,
    request: UserStatusChange,
    admin: dict = Depends(require_capability(Capability.USERS_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """Reactivate a user. They must log in again to get a token."""
    return await _set_active(db, admin, user_id, active=True, reason=request.reason)


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    admin: dict = Depends(require_capability(Capability.AUDIT_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Audit trail with optional filters, newest first."""
    logs = await get_audit_trail(
        db=db,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
