"""
Chart of Accounts (Domain Logic).

Account creation, the idempotent ``ensure_account`` lookup-or-create, and
the standard chart seeded for a new business.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizos.app.core.config import settings
from bizos.app.core.exceptions import NotFoundError, ValidationError
from bizos.app.models.account import Account
from bizos.app.models.ledger_enums import AccountType

logger = logging.getLogger("bizos.ledger")

SUSPENSE_ACCOUNT_NAME = "Suspense / Data Correction"
CASH_ON_HAND_CODE = "1000"
CUSTOMER_DEPOSITS_CODE = "2300"

STANDARD_CHART_OF_ACCOUNTS = [
    # Assets (1000 - 1999)
    ("1000", "Cash on Hand", AccountType.ASSET, "Physical cash in register/safe"),
    ("1010", "Main Bank Account", AccountType.ASSET, "Primary operating bank account"),
    ("1100", "Accounts Receivable", AccountType.ASSET, "Money owed by customers"),
    ("1200", "Staff Advances", AccountType.ASSET, "Prepayments to staff"),
    ("1300", "Inventory Asset", AccountType.ASSET, "Value of stock on hand"),
    ("1400", "VAT Input", AccountType.ASSET, "VAT paid on purchases (claimable)"),
    ("1500", "Fixed Assets - Equipment", AccountType.ASSET, "Computers, machinery, etc."),

    # Liabilities (2000 - 2999)
    ("2000", "Accounts Payable", AccountType.LIABILITY, "Money owed to vendors"),
    ("2100", "Accrued Expenses", AccountType.LIABILITY, "Expenses incurred but not paid"),
    ("2300", "Customer Deposits", AccountType.LIABILITY, "Prepayments/wallet balances from customers"),
    ("2350", "VAT Output", AccountType.LIABILITY, "VAT collected on sales"),
    ("2360", "WHT Payable", AccountType.LIABILITY, "Withholding tax deductions payable"),
    ("2400", "Payroll Payable", AccountType.LIABILITY, "Salaries pending payment"),

    # Equity (3000 - 3999)
    ("3000", "Owner's Equity", AccountType.EQUITY, "Capital invested"),
    ("3100", "Retained Earnings", AccountType.EQUITY, "Accumulated profits"),

    # Revenue (4000 - 4999)
    ("4000", "Sales Revenue", AccountType.INCOME, "Income from sales of goods/services"),
    ("4100", "Service Revenue", AccountType.INCOME, "Income from services"),
    ("4200", "Other Income", AccountType.INCOME, "Miscellaneous income"),

    # Direct costs (5000 - 5999)
    ("5000", "Cost of Goods Sold", AccountType.EXPENSE, "Direct cost of items sold"),
    ("5100", "Logistics & Delivery", AccountType.EXPENSE, "Cost of delivery"),

    # Operating expenses (6000 - 8999)
    ("6000", "Salaries & Wages", AccountType.EXPENSE, "Staff payroll cost"),
    ("6010", "Utility Bills", AccountType.EXPENSE, "Electricity, water, waste"),
    ("6020", "Rent & Rates", AccountType.EXPENSE, "Office/shop rent"),
    ("6030", "Internet & Data", AccountType.EXPENSE, "ISP and data subscriptions"),
    ("6040", "Repairs & Maintenance", AccountType.EXPENSE, "Upkeep of assets"),
    ("6050", "Marketing & Ads", AccountType.EXPENSE, "Promotion costs"),
    ("6060", "Bank Charges", AccountType.EXPENSE, "Fees charged by banks"),
    ("6100", "Cash Variance / Loss", AccountType.EXPENSE, "Shortages from reconciliation"),
]


async def get_account_by_code(db: AsyncSession, code: str) -> Optional[Account]:
    result = await db.execute(select(Account).where(Account.code == code))
    return result.scalar_one_or_none()


async def get_account(db: AsyncSession, account_id: int) -> Account:
    """
    Fetch an account by ID.

    Raises:
        NotFoundError: If the account does not exist
    """
    account = await db.get(Account, account_id)
    if not account:
        raise NotFoundError("Account", account_id)
    return account


async def create_account(
    db: AsyncSession,
    code: str,
    name: str,
    type: AccountType,
    description: Optional[str] = None,
    currency: Optional[str] = None,
    is_system: bool = False
) -> Account:
    """
    Create an account with a zero balance.

    Raises:
        ValidationError: If the code is blank or already in use
    """
    code = (code or "").strip()
    if not code:
        raise ValidationError("Account code is required")

    if await get_account_by_code(db, code):
        raise ValidationError(f"Account code {code} already exists", details={"code": code})

    account = Account(
        code=code,
        name=name,
        type=AccountType(type),
        description=description,
        currency=currency or settings.default_currency,
        balance=Decimal("0"),
        is_system=is_system
    )
    db.add(account)
    await db.flush()

    logger.info("Created account %s (%s, %s)", account.code, account.name, account.type.value)
    return account


async def ensure_account(
    db: AsyncSession,
    code: str,
    name: str,
    type: AccountType,
    description: Optional[str] = None,
    is_system: bool = True
) -> Account:
    """
    Return the account with ``code``, creating it on first use.

    Idempotent: repeated calls return the same row. The caller owns the
    commit.
    """
    account = await get_account_by_code(db, code)
    if account:
        return account

    return await create_account(
        db,
        code=code,
        name=name,
        type=type,
        description=description,
        is_system=is_system
    )


async def ensure_suspense_account(db: AsyncSession) -> Account:
    """Well-known holding account that absorbs balancing corrections."""
    return await ensure_account(
        db,
        code=settings.suspense_account_code,
        name=SUSPENSE_ACCOUNT_NAME,
        type=AccountType.EQUITY,
        description="System generated balancing account for corrupt data"
    )


async def ensure_standard_account(db: AsyncSession, code: str) -> Account:
    """Ensure one account from the standard chart, by code."""
    for std_code, name, account_type, description in STANDARD_CHART_OF_ACCOUNTS:
        if std_code == code:
            return await ensure_account(db, std_code, name, account_type, description)
    raise NotFoundError("Standard account", code)


async def seed_chart_of_accounts(db: AsyncSession) -> List[Account]:
    """
    Ensure every account of the standard chart exists.

    Returns:
        Accounts created by this call (empty when already seeded)
    """
    created = []
    for code, name, account_type, description in STANDARD_CHART_OF_ACCOUNTS:
        if await get_account_by_code(db, code):
            continue
        created.append(await create_account(
            db, code, name, account_type, description=description, is_system=True
        ))

    await db.commit()
    logger.info("Seeded chart of accounts: %d created", len(created))
    return created


async def list_accounts(db: AsyncSession, type: Optional[AccountType] = None) -> List[Account]:
    query = select(Account).order_by(Account.code)
    if type is not None:
        query = query.where(Account.type == AccountType(type))
    result = await db.execute(query)
    return list(result.scalars().all())
