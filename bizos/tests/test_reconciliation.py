"""
Tests for ledger maintenance: reconciliation, repair, normalization and
the maintenance lock.
"""

import pytest
from decimal import Decimal
from sqlalchemy import select, func, update
from sqlalchemy.orm.exc import StaleDataError

from bizos.app.core.config import settings
from bizos.app.core.exceptions import ConcurrencyError, ValidationError
from bizos.app.domain.ledger import reconciliation
from bizos.app.domain.ledger.posting import LedgerService
from bizos.app.domain.ledger.reconciliation import (
    REPAIR_DESCRIPTION, normalize_negative_entries, reconcile_all_accounts,
    repair_unbalanced_transactions, run_ledger_maintenance
)
from bizos.app.models.account import Account
from bizos.app.models.audit_log import AuditLog
from bizos.app.models.ledger_entry import LedgerEntry
from bizos.app.models.ledger_enums import AccountType, EntryDirection
from bizos.app.models.transaction import Transaction
from bizos.app.services.audit import AuditAction
from bizos.app.services.maintenance_lock import (
    LEDGER_MAINTENANCE_LOCK, acquire_maintenance_lock, is_maintenance_locked, release_maintenance_lock
)


async def _post_sale(db, chart, amount):
    return await LedgerService.post_transaction(
        db,
        description="Cash sale",
        date=None,
        entries=[
            {"account_id": chart["1000"].id, "debit": amount},
            {"account_id": chart["4000"].id, "credit": amount},
        ]
    )


async def _raw_transaction(db, description, lines):
    """Insert entries as-is, bypassing posting validation (legacy/corrupt data)."""
    transaction = Transaction(
        description=description,
        entries=[
            LedgerEntry(account_id=account_id, amount=Decimal(amount), direction=direction, description=description)
            for account_id, amount, direction in lines
        ]
    )
    db.add(transaction)
    await db.commit()
    return transaction


async def _balance(db, account_id):
    account = await db.get(Account, account_id, populate_existing=True)
    return account.balance


async def _corrupt_balance(db, account_id, value):
    await db.execute(update(Account).where(Account.id == account_id).values(balance=Decimal(value)))
    await db.commit()


@pytest.mark.asyncio
async def test_reconcile_restores_drifted_balance(db_session, chart):
    await _post_sale(db_session, chart, "300")
    await _corrupt_balance(db_session, chart["1000"].id, "999")

    report = await reconcile_all_accounts(db_session)

    assert report.accounts_checked == len(chart)
    assert report.errors == []
    assert len(report.adjustments) == 1
    adjustment = report.adjustments[0]
    assert adjustment.code == "1000"
    assert adjustment.stored_balance == Decimal("999")
    assert adjustment.recomputed_balance == Decimal("300")
    assert await _balance(db_session, chart["1000"].id) == Decimal("300")


@pytest.mark.asyncio
async def test_reconcile_twice_changes_nothing(db_session, chart):
    await _post_sale(db_session, chart, "300")
    await _corrupt_balance(db_session, chart["4000"].id, "1")

    first = await reconcile_all_accounts(db_session)
    second = await reconcile_all_accounts(db_session)

    assert len(first.adjustments) == 1
    assert second.adjustments == []
    assert await _balance(db_session, chart["4000"].id) == Decimal("300")


@pytest.mark.asyncio
async def test_reconcile_continues_past_failing_account(db_session, chart, monkeypatch):
    failing_id = chart["1000"].id
    payables_id = chart["2000"].id
    await _corrupt_balance(db_session, failing_id, "50")
    await _corrupt_balance(db_session, payables_id, "75")

    original = reconciliation._reconcile_account

    async def flaky_reconcile(db, account_id):
        if account_id == failing_id:
            raise StaleDataError("UPDATE statement on table 'accounts' expected to update 1 row(s); 0 were matched.")
        return await original(db, account_id)

    monkeypatch.setattr(reconciliation, "_reconcile_account", flaky_reconcile)

    report = await reconcile_all_accounts(db_session)

    assert [e.account_id for e in report.errors] == [failing_id]
    assert report.errors[0].error_code == "ERR_CONCURRENCY_001"
    assert [a.code for a in report.adjustments] == ["2000"]
    assert await _balance(db_session, payables_id) == Decimal("0")
    assert await _balance(db_session, failing_id) == Decimal("50")


@pytest.mark.asyncio
async def test_repair_balances_every_transaction_against_suspense(db_session, chart):
    cash, sales = chart["1000"].id, chart["4000"].id
    short_credit = await _raw_transaction(db_session, "Short credit", [
        (cash, "100", EntryDirection.DEBIT),
        (sales, "80", EntryDirection.CREDIT),
    ])
    excess_credit = await _raw_transaction(db_session, "Excess credit", [
        (cash, "50", EntryDirection.DEBIT),
        (sales, "80", EntryDirection.CREDIT),
    ])
    await _post_sale(db_session, chart, "10")

    report = await repair_unbalanced_transactions(db_session)

    assert report.transactions_checked == 3
    fixes = {fix.transaction_id: fix for fix in report.repaired}
    assert set(fixes) == {short_credit.id, excess_credit.id}
    assert fixes[short_credit.id].correction_direction == EntryDirection.CREDIT
    assert fixes[short_credit.id].correction_amount == Decimal("20")
    assert fixes[excess_credit.id].correction_direction == EntryDirection.DEBIT
    assert fixes[excess_credit.id].correction_amount == Decimal("30")

    suspense = (await db_session.execute(
        select(Account).where(Account.code == settings.suspense_account_code)
    )).scalars().all()
    assert len(suspense) == 1
    assert suspense[0].type == AccountType.EQUITY
    # Credit-normal: +20 credit, -30 debit
    assert await _balance(db_session, suspense[0].id) == Decimal("-10")

    rows = (await db_session.execute(
        select(LedgerEntry).where(LedgerEntry.description == REPAIR_DESCRIPTION)
    )).scalars().all()
    assert len(rows) == 2


@pytest.mark.asyncio
async def test_repair_is_idempotent(db_session, chart):
    await _raw_transaction(db_session, "Short credit", [
        (chart["1000"].id, "100", EntryDirection.DEBIT),
        (chart["4000"].id, "80", EntryDirection.CREDIT),
    ])

    first = await repair_unbalanced_transactions(db_session)
    second = await repair_unbalanced_transactions(db_session)

    assert len(first.repaired) == 1
    assert second.repaired == []
    count = (await db_session.execute(
        select(func.count(Account.id)).where(Account.code == settings.suspense_account_code)
    )).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_repair_without_unbalanced_groups_creates_no_suspense(db_session, chart):
    await _post_sale(db_session, chart, "10")

    report = await repair_unbalanced_transactions(db_session)

    assert report.repaired == []
    assert report.suspense_account_id is None
    count = (await db_session.execute(
        select(func.count(Account.id)).where(Account.code == settings.suspense_account_code)
    )).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_normalize_flips_negative_entries(db_session, chart):
    transaction = await _raw_transaction(db_session, "Imported refund", [
        (chart["1000"].id, "100", EntryDirection.DEBIT),
        (chart["4000"].id, "-100", EntryDirection.DEBIT),
    ])
    negative_id = transaction.entries[1].id

    report = await normalize_negative_entries(db_session)

    assert len(report.normalized) == 1
    fixed = report.normalized[0]
    assert fixed.entry_id == negative_id
    assert fixed.old_direction == EntryDirection.DEBIT
    assert fixed.new_direction == EntryDirection.CREDIT
    assert fixed.new_amount == Decimal("100")

    negatives = (await db_session.execute(
        select(func.count(LedgerEntry.id)).where(LedgerEntry.amount < 0)
    )).scalar()
    assert negatives == 0

    again = await normalize_negative_entries(db_session)
    assert again.normalized == []


@pytest.mark.asyncio
async def test_maintenance_runs_requested_tasks_and_audits(db_session, chart):
    await _raw_transaction(db_session, "Imported refund", [
        (chart["1000"].id, "100", EntryDirection.DEBIT),
        (chart["4000"].id, "-100", EntryDirection.DEBIT),
    ])

    results = await run_ledger_maintenance(
        db_session, tasks=("reconcile", "normalize"), actor_username="tester"
    )

    assert set(results) == {"normalize", "reconcile"}
    assert len(results["normalize"]["normalized"]) == 1
    # Normalized first, so reconciliation sees a balanced sale
    assert {a["code"] for a in results["reconcile"]["adjustments"]} == {"1000", "4000"}

    actions = (await db_session.execute(select(AuditLog.action))).scalars().all()
    assert AuditAction.NEGATIVE_ENTRIES_NORMALIZED in actions
    assert AuditAction.BALANCES_RECONCILED in actions
    assert AuditAction.UNBALANCED_REPAIRED not in actions
    assert not await is_maintenance_locked(db_session, LEDGER_MAINTENANCE_LOCK)


@pytest.mark.asyncio
async def test_maintenance_rejects_unknown_task(db_session):
    with pytest.raises(ValidationError):
        await run_ledger_maintenance(db_session, tasks=("defragment",))


@pytest.mark.asyncio
async def test_concurrent_maintenance_run_is_refused(db_session, session_factory, chart):
    await acquire_maintenance_lock(db_session, LEDGER_MAINTENANCE_LOCK, holder="first-run")

    async with session_factory() as other_session:
        with pytest.raises(ConcurrencyError):
            await run_ledger_maintenance(other_session, tasks=("reconcile",))

    assert await is_maintenance_locked(db_session, LEDGER_MAINTENANCE_LOCK)
    assert await release_maintenance_lock(db_session, LEDGER_MAINTENANCE_LOCK)
    assert not await is_maintenance_locked(db_session, LEDGER_MAINTENANCE_LOCK)
