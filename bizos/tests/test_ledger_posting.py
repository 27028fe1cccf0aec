"""
Tests for double-entry posting.

Covers the balance rules, the validation gate and atomicity of a posting.
"""

import pytest
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.orm.exc import StaleDataError

from bizos.app.core.exceptions import ConcurrencyError, ImbalanceError, NotFoundError, ValidationError
from bizos.app.domain.ledger.chart_of_accounts import create_account, ensure_account, get_account_by_code
from bizos.app.domain.ledger.posting import (
    JournalLine, LedgerService, compute_balance, signed_balance_change, validate_lines
)
from bizos.app.models.account import Account
from bizos.app.models.ledger_entry import LedgerEntry
from bizos.app.models.ledger_enums import AccountType, EntryDirection
from bizos.app.models.transaction import Transaction


async def _transaction_count(db):
    return (await db.execute(select(func.count(Transaction.id)))).scalar()


@pytest.mark.parametrize("account_type,direction,expected", [
    (AccountType.ASSET, EntryDirection.DEBIT, Decimal("10")),
    (AccountType.ASSET, EntryDirection.CREDIT, Decimal("-10")),
    (AccountType.EXPENSE, EntryDirection.DEBIT, Decimal("10")),
    (AccountType.LIABILITY, EntryDirection.CREDIT, Decimal("10")),
    (AccountType.LIABILITY, EntryDirection.DEBIT, Decimal("-10")),
    (AccountType.EQUITY, EntryDirection.CREDIT, Decimal("10")),
    (AccountType.INCOME, EntryDirection.DEBIT, Decimal("-10")),
])
def test_normal_balance_rule(account_type, direction, expected):
    assert signed_balance_change(account_type, direction, Decimal("10")) == expected


def test_compute_balance_matches_incremental_rule():
    assert compute_balance(AccountType.ASSET, Decimal("150"), Decimal("40")) == Decimal("110")
    assert compute_balance(AccountType.INCOME, Decimal("150"), Decimal("40")) == Decimal("-110")


def test_validate_lines_accepts_difference_within_tolerance():
    lines = validate_lines([
        {"account_id": 1, "debit": "100.00"},
        {"account_id": 2, "credit": "99.995"},
    ])
    assert [line.direction for line in lines] == [EntryDirection.DEBIT, EntryDirection.CREDIT]


def test_validate_lines_rejects_line_with_both_sides():
    with pytest.raises(ValidationError):
        validate_lines([
            {"account_id": 1, "debit": "50", "credit": "50"},
            {"account_id": 2, "credit": "0"},
        ])


def test_validate_lines_rejects_negative_amount():
    with pytest.raises(ValidationError):
        validate_lines([
            JournalLine(account_id=1, debit=Decimal("-5")),
            JournalLine(account_id=2, credit=Decimal("-5")),
        ])


@pytest.mark.asyncio
async def test_rent_payment_moves_both_balances(db_session, chart):
    rent = chart["6020"]
    cash = chart["1000"]

    transaction = await LedgerService.post_transaction(
        db_session,
        description="Office rent - March",
        date=None,
        entries=[
            JournalLine(account_id=rent.id, debit=Decimal("50000")),
            JournalLine(account_id=cash.id, credit=Decimal("50000")),
        ],
        reference="RENT-03"
    )

    assert transaction.id is not None
    assert len(transaction.entries) == 2
    assert rent.balance == Decimal("50000")
    assert cash.balance == Decimal("-50000")

    stored = await LedgerService.get_transaction(db_session, transaction.id)
    assert {(e.account_id, e.direction) for e in stored.entries} == {
        (rent.id, EntryDirection.DEBIT),
        (cash.id, EntryDirection.CREDIT),
    }


@pytest.mark.asyncio
async def test_sale_credits_income_account(db_session, chart):
    cash = chart["1000"]
    sales = chart["4000"]

    await LedgerService.post_transaction(
        db_session,
        description="Cash sale",
        date=None,
        entries=[
            {"account_id": cash.id, "debit": "1200.50"},
            {"account_id": sales.id, "credit": "1200.50"},
        ]
    )

    assert cash.balance == Decimal("1200.50")
    assert sales.balance == Decimal("1200.50")


@pytest.mark.asyncio
async def test_imbalanced_posting_persists_nothing(db_session, chart):
    cash = chart["1000"]
    sales = chart["4000"]

    with pytest.raises(ImbalanceError) as exc_info:
        await LedgerService.post_transaction(
            db_session,
            description="Broken sale",
            date=None,
            entries=[
                {"account_id": cash.id, "debit": "100"},
                {"account_id": sales.id, "credit": "80"},
            ]
        )

    assert exc_info.value.error_code == "ERR_LEDGER_001"
    assert exc_info.value.status_code == 422
    assert await _transaction_count(db_session) == 0
    assert (await db_session.execute(select(func.count(LedgerEntry.id)))).scalar() == 0
    assert cash.balance == Decimal("0")
    assert sales.balance == Decimal("0")


@pytest.mark.asyncio
async def test_single_entry_is_rejected(db_session, chart):
    with pytest.raises(ValidationError):
        await LedgerService.post_transaction(
            db_session,
            description="Lonely line",
            date=None,
            entries=[{"account_id": chart["1000"].id, "debit": "10"}]
        )

    assert await _transaction_count(db_session) == 0


@pytest.mark.asyncio
async def test_unknown_account_is_rejected(db_session, chart):
    with pytest.raises(NotFoundError):
        await LedgerService.post_transaction(
            db_session,
            description="Ghost account",
            date=None,
            entries=[
                {"account_id": chart["1000"].id, "debit": "10"},
                {"account_id": 987654, "credit": "10"},
            ]
        )

    assert await _transaction_count(db_session) == 0


@pytest.mark.asyncio
async def test_duplicate_account_code_is_rejected(db_session):
    await create_account(db_session, "7000", "Fuel", AccountType.EXPENSE)

    with pytest.raises(ValidationError):
        await create_account(db_session, "7000", "Fuel again", AccountType.EXPENSE)


@pytest.mark.asyncio
async def test_ensure_account_is_idempotent(db_session):
    first = await ensure_account(db_session, "9100", "Clearing", AccountType.ASSET)
    second = await ensure_account(db_session, "9100", "Clearing", AccountType.ASSET)
    await db_session.commit()

    assert first.id == second.id
    assert (await get_account_by_code(db_session, "9100")).id == first.id


@pytest.mark.asyncio
async def test_list_transactions_newest_first(db_session, chart):
    cash = chart["1000"]
    sales = chart["4000"]

    for n in range(3):
        await LedgerService.post_transaction(
            db_session,
            description=f"Sale {n}",
            date=None,
            entries=[
                {"account_id": cash.id, "debit": "10"},
                {"account_id": sales.id, "credit": "10"},
            ]
        )

    journal = await LedgerService.list_transactions(db_session, page=1, page_size=2)

    assert journal["total"] == 3
    assert [t.description for t in journal["transactions"]] == ["Sale 2", "Sale 1"]


async def _transaction_count(db):
    return (await db.execute(select(func.count(Transaction.id)))).scalar()


@pytest.mark.asyncio
async def test_overlapping_sales_to_same_cash_account_both_post(db_session, chart, session_factory):
    cash = chart["1000"]
    sales = chart["4000"]

    async with session_factory() as till_two:
        # Second till read Cash before the first till's sale committed
        stale_cash = await till_two.get(Account, cash.id)
        assert stale_cash.balance == Decimal("0")

        await LedgerService.post_transaction(
            db_session,
            description="Till 1 sale",
            date=None,
            entries=[
                JournalLine(account_id=cash.id, debit=Decimal("100")),
                JournalLine(account_id=sales.id, credit=Decimal("100")),
            ]
        )

        await LedgerService.post_transaction(
            till_two,
            description="Till 2 sale",
            date=None,
            entries=[
                JournalLine(account_id=cash.id, debit=Decimal("50")),
                JournalLine(account_id=sales.id, credit=Decimal("50")),
            ]
        )
        assert stale_cash.balance == Decimal("150")

    assert await _transaction_count(db_session) == 2
    refreshed_cash = await db_session.get(Account, cash.id, populate_existing=True)
    refreshed_sales = await db_session.get(Account, sales.id, populate_existing=True)
    assert refreshed_cash.balance == Decimal("150")
    assert refreshed_sales.balance == Decimal("150")


@pytest.mark.asyncio
async def test_lost_update_is_reported_as_concurrency_error(db_session, chart, monkeypatch):
    cash_id = chart["1000"].id
    sales_id = chart["4000"].id

    async def stale_flush(*args, **kwargs):
        raise StaleDataError("UPDATE statement on table 'accounts' expected to update 1 row(s); 0 were matched.")

    monkeypatch.setattr(db_session, "flush", stale_flush)

    with pytest.raises(ConcurrencyError) as exc_info:
        await LedgerService.post_transaction(
            db_session,
            description="Cash sale",
            date=None,
            entries=[
                JournalLine(account_id=cash_id, debit=Decimal("75")),
                JournalLine(account_id=sales_id, credit=Decimal("75")),
            ]
        )

    assert exc_info.value.status_code == 409
    assert exc_info.value.details["account_ids"] == sorted([cash_id, sales_id])
    monkeypatch.undo()

    assert await _transaction_count(db_session) == 0
    cash = await db_session.get(Account, cash_id, populate_existing=True)
    assert cash.balance == Decimal("0")
