"""
Audit logging service for tracking privileged and financial actions.

Provides the append-only action log keyed by user + action + entity.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from bizos.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    USER_BLOCKED = "USER_BLOCKED"
    USER_UNBLOCKED = "USER_UNBLOCKED"
    USER_CREATED = "USER_CREATED"
    USER_ACCESS_CHANGED = "USER_ACCESS_CHANGED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    TOKEN_REVOKED = "TOKEN_REVOKED"

    # Ledger
    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    CHART_SEEDED = "CHART_SEEDED"
    TRANSACTION_POSTED = "TRANSACTION_POSTED"

    # Ledger maintenance
    BALANCES_RECONCILED = "BALANCES_RECONCILED"
    UNBALANCED_REPAIRED = "UNBALANCED_REPAIRED"
    NEGATIVE_ENTRIES_NORMALIZED = "NEGATIVE_ENTRIES_NORMALIZED"

    # Customers
    CONTACT_CREATED = "CONTACT_CREATED"
    WALLET_DEPOSIT_RECORDED = "WALLET_DEPOSIT_RECORDED"
    WALLET_DEPOSIT_CONFIRMED = "WALLET_DEPOSIT_CONFIRMED"
    CUSTOMER_CHARGED = "CUSTOMER_CHARGED"

    # Loyalty
    OUTLET_CREATED = "OUTLET_CREATED"
    POINTS_EARNED = "POINTS_EARNED"
    POINTS_REDEEMED = "POINTS_REDEEMED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    commit: bool = True
) -> AuditLog:
    """
    Append an event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action (None for system)
        actor_username: Username of actor
        entity_type: Kind of entity acted upon (e.g. "Account")
        entity_id: ID of the entity acted upon
        metadata: Additional context as JSON
        ip_address: IP address of the request
        commit: Commit immediately. Pass False to make the log part of the
            caller's transaction, so it succeeds or fails with the action.

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    if commit:
        await db.commit()
    else:
        await db.flush()

    return audit_log


async def log_user_action(
    db: AsyncSession,
    current_user: dict,
    action: str,
    entity_type: str,
    entity_id: Any,
    metadata: Optional[Dict[str, Any]] = None,
    commit: bool = True
) -> AuditLog:
    """
    Log an action performed by an authenticated user (JWT payload).
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user.get("user_id"),
        actor_username=current_user.get("sub"),
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata,
        commit=commit
    )


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    username: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an authentication event (login success/failure, logout).
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_username=username,
        entity_type="User",
        entity_id=user_id,
        ip_address=ip_address,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        db: Database session
        entity_type: Filter by entity type
        entity_id: Filter by entity ID
        action: Filter by action type
        limit: Maximum number of records to return

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == str(entity_id))

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
