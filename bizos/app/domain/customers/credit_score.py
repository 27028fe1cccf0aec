"""
Customer credit scoring.

A heuristic, not a statistical model: the score is the share of lifetime
sales that is not currently owed. Thresholds and formula are fixed so
stored scores stay comparable.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from bizos.app.core.config import settings
from bizos.app.core.exceptions import NotFoundError
from bizos.app.domain.ledger.posting import to_decimal, ZERO
from bizos.app.models.contact import Contact
from bizos.app.models.customer_ledger_entry import CustomerLedgerEntry

HUNDRED = Decimal("100")

# Debt with no sales history (migrated or opening balances)
NO_HISTORY_SCORE = Decimal("50")

GRADE_THRESHOLDS = (
    (Decimal("90"), "A"),
    (Decimal("75"), "B"),
    (Decimal("50"), "C"),
    (Decimal("30"), "D"),
)


@dataclass
class CreditScore:
    score: int
    grade: str
    total_sales: Decimal
    total_payments: Decimal
    current_debt: Decimal
    limit: Decimal
    utilization: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "grade": self.grade,
            "total_sales": str(self.total_sales),
            "total_payments": str(self.total_payments),
            "current_debt": str(self.current_debt),
            "limit": str(self.limit),
            "utilization": str(self.utilization),
        }


def grade_for(score: Decimal) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def score_from_aggregates(wallet_balance: Decimal, total_sales: Decimal) -> Decimal:
    """
    Unrounded score in [0, 100].

    100 when the wallet is not negative; otherwise 100 minus the owed share
    of lifetime sales, floored at 0; 50 when there are no sales to compare.
    """
    if wallet_balance >= 0:
        return HUNDRED

    current_debt = -wallet_balance
    if total_sales > 0:
        return max(ZERO, HUNDRED - (current_debt / total_sales) * HUNDRED)
    return NO_HISTORY_SCORE


async def calculate_credit_score(db: AsyncSession, contact_id: int) -> CreditScore:
    """
    Score a customer from their ledger history and wallet balance.

    Raises:
        NotFoundError: If the contact does not exist
    """
    contact = await db.get(Contact, contact_id)
    if not contact:
        raise NotFoundError("Contact", contact_id)

    result = await db.execute(
        select(
            func.coalesce(func.sum(CustomerLedgerEntry.debit), 0),
            func.coalesce(func.sum(CustomerLedgerEntry.credit), 0),
        ).where(CustomerLedgerEntry.contact_id == contact_id)
    )
    total_sales, total_payments = (to_decimal(v) for v in result.one())

    wallet_balance = to_decimal(contact.wallet_balance)
    current_debt = -wallet_balance if wallet_balance < 0 else ZERO

    raw_score = score_from_aggregates(wallet_balance, total_sales)
    limit = to_decimal(settings.credit_limit)

    return CreditScore(
        score=int(raw_score.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
        grade=grade_for(raw_score),
        total_sales=total_sales,
        total_payments=total_payments,
        current_debt=current_debt,
        limit=limit,
        utilization=(current_debt / limit) * HUNDRED if limit > 0 else ZERO,
    )


async def refresh_credit_score(db: AsyncSession, contact_id: int) -> CreditScore:
    """Calculate the score and store it on the contact."""
    credit = await calculate_credit_score(db, contact_id)

    contact = await db.get(Contact, contact_id)
    contact.credit_score = credit.score
    await db.commit()

    return credit
