"""
Finance API Endpoints.

Chart of accounts and journal posting. Thin wrappers over the ledger
domain services; domain errors propagate to the global handlers.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from bizos.app.db.session import get_db
from bizos.app.core.guards import require_capability
from bizos.app.core.policy import Capability
from bizos.app.domain.ledger import chart_of_accounts
from bizos.app.domain.ledger.posting import LedgerService
from bizos.app.models.ledger_enums import AccountType
from bizos.app.schemas.finance import (
    AccountCreate, AccountResponse, AccountListResponse, SeedChartResponse,
    TransactionCreate, TransactionResponse, TransactionListResponse
)
from bizos.app.services.audit import log_user_action, AuditAction

router = APIRouter(prefix="/finance", tags=["Finance"])


@router.get("/accounts", response_model=AccountListResponse)
async def list_accounts(
    type: Optional[AccountType] = Query(None, description="Filter by account type"),
    current_user: dict = Depends(require_capability(Capability.FINANCE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """List the chart of accounts ordered by code."""
    accounts = await chart_of_accounts.list_accounts(db, type=type)
    return AccountListResponse(
        accounts=[AccountResponse.model_validate(account) for account in accounts],
        total=len(accounts)
    )


@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    account_data: AccountCreate,
    current_user: dict = Depends(require_capability(Capability.FINANCE_POST)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an account with a zero balance.

    Raises:
        400: Account code already in use
    """
    account = await chart_of_accounts.create_account(
        db,
        code=account_data.code,
        name=account_data.name,
        type=account_data.type,
        description=account_data.description,
        currency=account_data.currency
    )
    await log_user_action(
        db, current_user, AuditAction.ACCOUNT_CREATED, "Account", account.id,
        metadata={"code": account.code, "type": account.type.value}
    )
    return AccountResponse.model_validate(account)


@router.post("/accounts/seed", response_model=SeedChartResponse)
async def seed_accounts(
    current_user: dict = Depends(require_capability(Capability.FINANCE_MAINTAIN)),
    db: AsyncSession = Depends(get_db)
):
    """Ensure the standard chart of accounts exists. Safe to repeat."""
    created = await chart_of_accounts.seed_chart_of_accounts(db)
    await log_user_action(
        db, current_user, AuditAction.CHART_SEEDED, "Account", None,
        metadata={"created": [account.code for account in created]}
    )
    return SeedChartResponse(
        created=[AccountResponse.model_validate(account) for account in created],
        total_created=len(created)
    )


@router.get("/accounts/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: int,
    current_user: dict = Depends(require_capability(Capability.FINANCE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Fetch one account with its cached balance."""
    account = await chart_of_accounts.get_account(db, account_id)
    return AccountResponse.model_validate(account)


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=200, description="Items per page"),
    current_user: dict = Depends(require_capability(Capability.FINANCE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Paginated journal, newest first."""
    journal = await LedgerService.list_transactions(db, page=page, page_size=page_size)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in journal["transactions"]],
        total=journal["total"],
        page=journal["page"],
        page_size=journal["page_size"]
    )


@router.post("/transactions", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def post_transaction(
    transaction_data: TransactionCreate,
    current_user: dict = Depends(require_capability(Capability.FINANCE_POST)),
    db: AsyncSession = Depends(get_db)
):
    """
    Post a balanced double-entry transaction.

    Raises:
        400: Fewer than two entries or a malformed line
        404: Unknown account
        422: Debits and credits do not balance
    """
    transaction = await LedgerService.post_transaction(
        db,
        description=transaction_data.description,
        date=transaction_data.date,
        entries=transaction_data.entries,
        reference=transaction_data.reference,
        metadata=transaction_data.metadata,
        created_by_id=current_user["user_id"]
    )
    await log_user_action(
        db, current_user, AuditAction.TRANSACTION_POSTED, "Transaction", transaction.id,
        metadata={"reference": transaction.reference, "entries": len(transaction.entries)}
    )

    transaction = await LedgerService.get_transaction(db, transaction.id)
    return TransactionResponse.model_validate(transaction)
