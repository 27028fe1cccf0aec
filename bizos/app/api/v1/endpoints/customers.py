"""
Customer API Endpoints.

Contacts, wallet deposits, credit sales, statements and credit scores.
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from bizos.app.db.session import get_db
from bizos.app.core.guards import require_capability
from bizos.app.core.policy import Capability
from bizos.app.domain.customers import customer_ledger
from bizos.app.domain.customers.credit_score import refresh_credit_score
from bizos.app.schemas.customer import (
    ContactCreate, ContactResponse, DepositCreate, DepositConfirm, ChargeCreate,
    CustomerLedgerEntryResponse, StatementResponse, StatementLineResponse, CreditScoreResponse
)
from bizos.app.services.audit import log_user_action, AuditAction

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def create_contact(
    contact_data: ContactCreate,
    current_user: dict = Depends(require_capability(Capability.CUSTOMERS_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Create a customer or vendor with an empty wallet."""
    contact = await customer_ledger.create_contact(
        db,
        name=contact_data.name,
        type=contact_data.type,
        phone=contact_data.phone,
        email=contact_data.email
    )
    await log_user_action(
        db, current_user, AuditAction.CONTACT_CREATED, "Contact", contact.id,
        metadata={"name": contact.name}
    )
    return ContactResponse.model_validate(contact)


@router.get("/{contact_id}/credit-score", response_model=CreditScoreResponse)
async def get_credit_score(
    contact_id: int,
    current_user: dict = Depends(require_capability(Capability.CUSTOMERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """
    Score the customer from ledger history and store the score.

    Raises:
        404: Unknown contact
    """
    credit = await refresh_credit_score(db, contact_id)
    return CreditScoreResponse(
        contact_id=contact_id,
        score=credit.score,
        grade=credit.grade,
        total_sales=credit.total_sales,
        total_payments=credit.total_payments,
        current_debt=credit.current_debt,
        limit=credit.limit,
        utilization=credit.utilization
    )


@router.get("/{contact_id}/ledger", response_model=StatementResponse)
async def get_statement(
    contact_id: int,
    start_date: Optional[datetime] = Query(None, description="Statement start (inclusive)"),
    end_date: Optional[datetime] = Query(None, description="Statement end (inclusive)"),
    current_user: dict = Depends(require_capability(Capability.CUSTOMERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Chronological statement with running balance."""
    statement = await customer_ledger.get_customer_statement(db, contact_id, start_date, end_date)
    return StatementResponse(
        contact_id=statement["contact_id"],
        opening_balance=statement["opening_balance"],
        closing_balance=statement["closing_balance"],
        lines=[StatementLineResponse.model_validate(line) for line in statement["lines"]]
    )


@router.post("/{contact_id}/deposits", response_model=CustomerLedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def record_deposit(
    contact_id: int,
    deposit: DepositCreate,
    current_user: dict = Depends(require_capability(Capability.CUSTOMERS_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Record a wallet deposit as PENDING. The wallet changes on confirmation."""
    entry = await customer_ledger.record_wallet_deposit(
        db, contact_id, deposit.amount, notes=deposit.notes, reference=deposit.reference
    )
    await log_user_action(
        db, current_user, AuditAction.WALLET_DEPOSIT_RECORDED, "CustomerLedgerEntry", entry.id,
        metadata={"contact_id": contact_id, "amount": str(entry.credit)}
    )
    return CustomerLedgerEntryResponse.model_validate(entry)


@router.post("/{contact_id}/charges", response_model=CustomerLedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def record_charge(
    contact_id: int,
    charge: ChargeCreate,
    current_user: dict = Depends(require_capability(Capability.CUSTOMERS_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Bill the customer on credit. Lowers the wallet balance."""
    entry = await customer_ledger.record_customer_charge(
        db, contact_id, charge.amount, charge.description, reference=charge.reference
    )
    await log_user_action(
        db, current_user, AuditAction.CUSTOMER_CHARGED, "CustomerLedgerEntry", entry.id,
        metadata={"contact_id": contact_id, "amount": str(entry.debit)}
    )
    return CustomerLedgerEntryResponse.model_validate(entry)


@router.post("/ledger/{entry_id}/confirm", response_model=CustomerLedgerEntryResponse)
async def confirm_deposit(
    entry_id: int,
    confirmation: DepositConfirm,
    current_user: dict = Depends(require_capability(Capability.CUSTOMERS_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Confirm a pending deposit: credit the wallet and post it to the ledger.

    Raises:
        400: Already confirmed
        404: Unknown entry or cash account
    """
    entry = await customer_ledger.confirm_wallet_deposit(
        db, entry_id, user_id=current_user["user_id"], cash_account_id=confirmation.cash_account_id
    )
    await log_user_action(
        db, current_user, AuditAction.WALLET_DEPOSIT_CONFIRMED, "CustomerLedgerEntry", entry.id,
        metadata={"contact_id": entry.contact_id, "amount": str(entry.credit)}
    )
    return CustomerLedgerEntryResponse.model_validate(entry)
