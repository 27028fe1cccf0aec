"""
Tests for customer credit scoring.
"""

import pytest
from decimal import Decimal

from bizos.app.core.exceptions import NotFoundError
from bizos.app.domain.customers.credit_score import (
    calculate_credit_score, grade_for, refresh_credit_score, score_from_aggregates
)
from bizos.app.domain.customers.customer_ledger import (
    confirm_wallet_deposit, create_contact, record_customer_charge, record_wallet_deposit
)
from bizos.app.models.contact import Contact


async def _pay(db, contact_id, amount):
    entry = await record_wallet_deposit(db, contact_id, amount)
    await confirm_wallet_deposit(db, entry.id)


@pytest.mark.parametrize("score,grade", [
    (Decimal("100"), "A"),
    (Decimal("90"), "A"),
    (Decimal("89.99"), "B"),
    (Decimal("75"), "B"),
    (Decimal("74.6"), "C"),
    (Decimal("50"), "C"),
    (Decimal("30"), "D"),
    (Decimal("29.9"), "F"),
    (Decimal("0"), "F"),
])
def test_grade_thresholds(score, grade):
    assert grade_for(score) == grade


def test_debt_larger_than_sales_floors_at_zero():
    assert score_from_aggregates(Decimal("-600"), Decimal("100")) == Decimal("0")


@pytest.mark.asyncio
async def test_customer_in_credit_scores_full_marks(db_session):
    customer = await create_contact(db_session, "Prepaid Customer", wallet_balance="250")

    credit = await calculate_credit_score(db_session, customer.id)

    assert credit.score == 100
    assert credit.grade == "A"
    assert credit.current_debt == Decimal("0")
    assert credit.utilization == Decimal("0")


@pytest.mark.asyncio
async def test_half_of_sales_owed_scores_fifty(db_session):
    customer = await create_contact(db_session, "Half Paid")
    await record_customer_charge(db_session, customer.id, "1000", "Credit sale")
    await _pay(db_session, customer.id, "500")

    credit = await calculate_credit_score(db_session, customer.id)

    assert credit.total_sales == Decimal("1000")
    assert credit.total_payments == Decimal("500")
    assert credit.current_debt == Decimal("500")
    assert credit.score == 50
    assert credit.grade == "C"
    assert credit.limit == Decimal("1000000")
    assert credit.utilization == Decimal("0.05")


@pytest.mark.asyncio
async def test_debt_without_sales_history_scores_fifty(db_session):
    customer = await create_contact(db_session, "Migrated Debtor", wallet_balance="-200")

    credit = await calculate_credit_score(db_session, customer.id)

    assert credit.score == 50
    assert credit.grade == "C"


@pytest.mark.asyncio
async def test_score_rounds_half_up_but_grades_unrounded(db_session):
    customer = await create_contact(db_session, "Borderline")
    await record_customer_charge(db_session, customer.id, "1000", "Credit sale")
    await _pay(db_session, customer.id, "746")

    credit = await calculate_credit_score(db_session, customer.id)

    # 100 - 254 / 1000 * 100 = 74.6
    assert credit.score == 75
    assert credit.grade == "C"


@pytest.mark.asyncio
async def test_pending_deposit_does_not_reduce_debt(db_session):
    customer = await create_contact(db_session, "Pending Payer")
    await record_customer_charge(db_session, customer.id, "1000", "Credit sale")
    await record_wallet_deposit(db_session, customer.id, "1000")

    credit = await calculate_credit_score(db_session, customer.id)

    assert credit.current_debt == Decimal("1000")
    assert credit.score == 0
    assert credit.grade == "F"


@pytest.mark.asyncio
async def test_refresh_stores_score_on_contact(db_session):
    customer = await create_contact(db_session, "Stored Score")
    await record_customer_charge(db_session, customer.id, "400", "Credit sale")
    await _pay(db_session, customer.id, "100")

    credit = await refresh_credit_score(db_session, customer.id)

    stored = await db_session.get(Contact, customer.id, populate_existing=True)
    assert credit.score == 25
    assert stored.credit_score == 25


@pytest.mark.asyncio
async def test_unknown_contact(db_session):
    with pytest.raises(NotFoundError):
        await calculate_credit_score(db_session, 31337)
