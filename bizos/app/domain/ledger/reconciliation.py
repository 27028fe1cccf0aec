"""
Ledger Maintenance (Domain Logic).

Batch jobs that keep the ledger consistent:

- ``normalize_negative_entries``: rewrite negative amounts as positive
  amounts on the opposite side.
- ``repair_unbalanced_transactions``: balance every transaction group
  against the Suspense account.
- ``reconcile_all_accounts``: recompute cached account balances from
  ledger entries.

All three are safe to re-run; a second run with no new data changes
nothing. ``run_ledger_maintenance`` runs them in that order under the
ledger maintenance lock.
"""

import logging
from dataclasses import dataclass, field, asdict
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from bizos.app.core.config import settings
from bizos.app.core.exceptions import AppException, ConcurrencyError, ValidationError
from bizos.app.domain.ledger.chart_of_accounts import ensure_suspense_account
from bizos.app.domain.ledger.posting import compute_balance, signed_balance_change, to_decimal, ZERO
from bizos.app.models.account import Account
from bizos.app.models.ledger_entry import LedgerEntry
from bizos.app.models.ledger_enums import EntryDirection
from bizos.app.services.audit import log_event, AuditAction
from bizos.app.services.maintenance_lock import maintenance_lock

logger = logging.getLogger("bizos.maintenance")

REPAIR_DESCRIPTION = "System Fix: Balancing Entry"

MAINTENANCE_TASKS = ("normalize", "repair", "reconcile")


def _serialize(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, EntryDirection):
        return value.value
    return value


@dataclass
class BalanceAdjustment:
    account_id: int
    code: str
    name: str
    stored_balance: Decimal
    recomputed_balance: Decimal


@dataclass
class AccountFailure:
    account_id: int
    error_code: str
    message: str


@dataclass
class ReconciliationReport:
    accounts_checked: int = 0
    adjustments: List[BalanceAdjustment] = field(default_factory=list)
    errors: List[AccountFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accounts_checked": self.accounts_checked,
            "adjustments": [{k: _serialize(v) for k, v in asdict(a).items()} for a in self.adjustments],
            "errors": [asdict(e) for e in self.errors],
        }


@dataclass
class RepairedTransaction:
    transaction_id: int
    debits: Decimal
    credits: Decimal
    correction_amount: Decimal
    correction_direction: EntryDirection


@dataclass
class RepairReport:
    transactions_checked: int = 0
    suspense_account_id: Optional[int] = None
    repaired: List[RepairedTransaction] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactions_checked": self.transactions_checked,
            "suspense_account_id": self.suspense_account_id,
            "repaired": [{k: _serialize(v) for k, v in asdict(r).items()} for r in self.repaired],
        }


@dataclass
class NormalizedEntry:
    entry_id: int
    old_direction: EntryDirection
    old_amount: Decimal
    new_direction: EntryDirection
    new_amount: Decimal


@dataclass
class NormalizationReport:
    normalized: List[NormalizedEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "normalized": [{k: _serialize(v) for k, v in asdict(n).items()} for n in self.normalized],
        }


def _direction_sums(direction_column, amount_column):
    return (
        func.coalesce(func.sum(case((direction_column == EntryDirection.DEBIT, amount_column), else_=0)), 0),
        func.coalesce(func.sum(case((direction_column == EntryDirection.CREDIT, amount_column), else_=0)), 0),
    )


async def _reconcile_account(db: AsyncSession, account_id: int) -> Optional[BalanceAdjustment]:
    """
    Recompute one account inside the current transaction.

    The account row is locked and re-read so the stored balance and the
    entry sums come from the same snapshot.
    """
    result = await db.execute(
        select(Account)
        .where(Account.id == account_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    account = result.scalar_one_or_none()
    if account is None:
        return None

    debit_sum, credit_sum = _direction_sums(LedgerEntry.direction, LedgerEntry.amount)
    sums = await db.execute(
        select(debit_sum, credit_sum).where(LedgerEntry.account_id == account_id)
    )
    debits, credits = sums.one()

    stored = to_decimal(account.balance)
    recomputed = compute_balance(account.type, to_decimal(debits), to_decimal(credits))

    if abs(recomputed - stored) <= settings.balance_tolerance:
        return None

    account.balance = recomputed
    await db.flush()

    return BalanceAdjustment(
        account_id=account.id,
        code=account.code,
        name=account.name,
        stored_balance=stored,
        recomputed_balance=recomputed,
    )


async def reconcile_all_accounts(db: AsyncSession) -> ReconciliationReport:
    """
    Recompute every account's cached balance from its ledger entries.

    Each account is handled in its own database transaction. A failure on
    one account is rolled back, recorded in the report and the batch moves
    on.

    Returns:
        ReconciliationReport with one adjustment per corrected account
    """
    account_ids = (await db.execute(select(Account.id).order_by(Account.id))).scalars().all()
    await db.commit()

    report = ReconciliationReport(accounts_checked=len(account_ids))

    for account_id in account_ids:
        try:
            adjustment = await _reconcile_account(db, account_id)
            await db.commit()
        except StaleDataError as exc:
            await db.rollback()
            error = ConcurrencyError(
                f"Account {account_id} changed during reconciliation",
                details={"account_id": account_id}
            )
            logger.warning("Reconciliation lost-update on account %s: %s", account_id, exc)
            report.errors.append(AccountFailure(account_id, error.error_code, error.message))
            continue
        except (SQLAlchemyError, AppException) as exc:
            await db.rollback()
            logger.error("Reconciliation failed for account %s: %s", account_id, exc)
            report.errors.append(AccountFailure(
                account_id,
                getattr(exc, "error_code", "ERR_DATABASE"),
                str(exc)
            ))
            continue

        if adjustment:
            logger.warning(
                "Balance mismatch [%s %s]: stored %s != recomputed %s; updated",
                adjustment.code, adjustment.name,
                adjustment.stored_balance, adjustment.recomputed_balance
            )
            report.adjustments.append(adjustment)

    logger.info(
        "Reconciliation complete: %d checked, %d adjusted, %d failed",
        report.accounts_checked, len(report.adjustments), len(report.errors)
    )
    return report


async def repair_unbalanced_transactions(db: AsyncSession) -> RepairReport:
    """
    Balance every transaction group against the Suspense account.

    Groups whose debits and credits already agree within the tolerance are
    skipped, so re-running is a no-op. Runs as one database transaction.

    Returns:
        RepairReport listing each corrected transaction
    """
    debit_sum, credit_sum = _direction_sums(LedgerEntry.direction, LedgerEntry.amount)
    result = await db.execute(
        select(LedgerEntry.transaction_id, debit_sum, credit_sum)
        .group_by(LedgerEntry.transaction_id)
        .order_by(LedgerEntry.transaction_id)
    )
    groups = result.all()

    report = RepairReport(transactions_checked=len(groups))
    suspense = None

    try:
        for transaction_id, debits, credits in groups:
            debits = to_decimal(debits)
            credits = to_decimal(credits)
            diff = debits - credits  # Positive needs a credit, negative needs a debit

            if abs(diff) <= settings.balance_tolerance:
                continue

            if suspense is None:
                suspense = await ensure_suspense_account(db)

            direction = EntryDirection.CREDIT if diff > 0 else EntryDirection.DEBIT
            amount = abs(diff)

            db.add(LedgerEntry(
                transaction_id=transaction_id,
                account_id=suspense.id,
                amount=amount,
                direction=direction,
                description=REPAIR_DESCRIPTION
            ))
            suspense.balance = to_decimal(suspense.balance) + signed_balance_change(
                suspense.type, direction, amount
            )

            logger.warning(
                "Fixing transaction %s: debits %s, credits %s, %s %s to suspense",
                transaction_id, debits, credits, direction.value, amount
            )
            report.repaired.append(RepairedTransaction(
                transaction_id=transaction_id,
                debits=debits,
                credits=credits,
                correction_amount=amount,
                correction_direction=direction,
            ))

        await db.flush()
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Unbalanced transaction repair failed; rolled back")
        raise

    if suspense is not None:
        report.suspense_account_id = suspense.id

    logger.info("Repaired %d unbalanced transactions", len(report.repaired))
    return report


async def normalize_negative_entries(db: AsyncSession) -> NormalizationReport:
    """
    Rewrite negative ledger amounts as positive amounts on the other side.

    A CREDIT of -100 is a DEBIT of 100, so balances are unaffected. Runs as
    one database transaction; afterwards no entry is negative.
    """
    result = await db.execute(
        select(LedgerEntry).where(LedgerEntry.amount < 0).order_by(LedgerEntry.id)
    )
    negatives = result.scalars().all()

    report = NormalizationReport()
    if not negatives:
        logger.info("No negative ledger entries to normalize")
        return report

    try:
        for entry in negatives:
            old_amount = to_decimal(entry.amount)
            old_direction = entry.direction

            entry.amount = -old_amount
            entry.direction = old_direction.flipped()

            report.normalized.append(NormalizedEntry(
                entry_id=entry.id,
                old_direction=old_direction,
                old_amount=old_amount,
                new_direction=entry.direction,
                new_amount=entry.amount,
            ))

        await db.flush()
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Negative entry normalization failed; rolled back")
        raise

    logger.info("Normalized %d negative ledger entries", len(report.normalized))
    return report


async def run_ledger_maintenance(
    db: AsyncSession,
    tasks: Sequence[str] = MAINTENANCE_TASKS,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    holder: Optional[str] = None
) -> Dict[str, Any]:
    """
    Run maintenance tasks under the ledger maintenance lock.

    Tasks always run in the order normalize, repair, reconcile regardless
    of the order given. Each completed task is audited.

    Raises:
        ValidationError: Unknown task name
        ConcurrencyError: Another maintenance run holds the lock
    """
    unknown = set(tasks) - set(MAINTENANCE_TASKS)
    if unknown:
        raise ValidationError(f"Unknown maintenance task(s): {', '.join(sorted(unknown))}")

    results: Dict[str, Any] = {}

    async with maintenance_lock(db, holder=holder or actor_username or "system"):
        if "normalize" in tasks:
            report = await normalize_negative_entries(db)
            results["normalize"] = report.to_dict()
            await log_event(
                db, AuditAction.NEGATIVE_ENTRIES_NORMALIZED,
                actor_id=actor_id, actor_username=actor_username,
                entity_type="Ledger", entity_id="entries",
                metadata={"normalized": len(report.normalized)}
            )

        if "repair" in tasks:
            report = await repair_unbalanced_transactions(db)
            results["repair"] = report.to_dict()
            await log_event(
                db, AuditAction.UNBALANCED_REPAIRED,
                actor_id=actor_id, actor_username=actor_username,
                entity_type="Ledger", entity_id="transactions",
                metadata={"repaired": len(report.repaired)}
            )

        if "reconcile" in tasks:
            report = await reconcile_all_accounts(db)
            results["reconcile"] = report.to_dict()
            await log_event(
                db, AuditAction.BALANCES_RECONCILED,
                actor_id=actor_id, actor_username=actor_username,
                entity_type="Ledger", entity_id="accounts",
                metadata={"adjusted": len(report.adjustments), "failed": len(report.errors)}
            )

    return results
