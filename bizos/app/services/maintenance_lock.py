"""
Maintenance locking service.

Serializes ledger maintenance runs (reconciliation, repair, normalization)
against each other using a row in ``maintenance_locks``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bizos.app.core.exceptions import ConcurrencyError
from bizos.app.models.maintenance_lock import MaintenanceLock

logger = logging.getLogger("bizos.maintenance")

LEDGER_MAINTENANCE_LOCK = "ledger-maintenance"


async def acquire_maintenance_lock(
    db: AsyncSession,
    lock_name: str,
    holder: Optional[str] = None
) -> MaintenanceLock:
    """
    Acquire a named maintenance lock.

    The lock row is committed immediately so other sessions see it.

    Args:
        db: Database session
        lock_name: Name of the lock
        holder: Free-form description of who holds it

    Returns:
        Created lock row

    Raises:
        ConcurrencyError: If the lock is already held
    """
    lock = MaintenanceLock(lock_name=lock_name, holder=holder)
    db.add(lock)

    try:
        await db.commit()  # Will raise IntegrityError if the name is taken
    except IntegrityError:
        await db.rollback()
        raise ConcurrencyError(
            f"Maintenance lock '{lock_name}' is already held",
            details={"lock_name": lock_name}
        )

    logger.info("Acquired maintenance lock %s (holder=%s)", lock_name, holder)
    return lock


async def release_maintenance_lock(db: AsyncSession, lock_name: str) -> bool:
    """
    Release a named maintenance lock.

    Returns:
        True if a lock was released, False if none was held
    """
    result = await db.execute(
        delete(MaintenanceLock).where(MaintenanceLock.lock_name == lock_name)
    )
    await db.commit()

    released = (result.rowcount or 0) > 0
    if released:
        logger.info("Released maintenance lock %s", lock_name)
    return released


async def is_maintenance_locked(db: AsyncSession, lock_name: str) -> bool:
    """Check whether a named maintenance lock is currently held."""
    result = await db.execute(
        select(MaintenanceLock).where(MaintenanceLock.lock_name == lock_name)
    )
    return result.scalar_one_or_none() is not None


@asynccontextmanager
async def maintenance_lock(
    db: AsyncSession,
    lock_name: str = LEDGER_MAINTENANCE_LOCK,
    holder: Optional[str] = None
) -> AsyncIterator[MaintenanceLock]:
    """
    Hold a maintenance lock for the duration of the block.

    Usage:
        async with maintenance_lock(db, holder="cli"):
            await reconcile_all_accounts(db)
    """
    lock = await acquire_maintenance_lock(db, lock_name, holder)
    try:
        yield lock
    finally:
        # Leave no half-finished transaction behind the release
        await db.rollback()
        await release_maintenance_lock(db, lock_name)
