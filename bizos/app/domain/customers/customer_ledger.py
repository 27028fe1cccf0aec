"""
Customer Ledger Service (Domain Logic).

Customer-facing receivable and wallet activity: credit sales, wallet
deposits (recorded as PENDING, applied on confirmation) and statements.
Confirming a deposit also posts it to the general ledger.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bizos.app.core.exceptions import NotFoundError, ValidationError
from bizos.app.db.session import utcnow
from bizos.app.domain.ledger.chart_of_accounts import (
    CASH_ON_HAND_CODE, CUSTOMER_DEPOSITS_CODE, ensure_standard_account
)
from bizos.app.domain.ledger.posting import JournalLine, LedgerService, to_decimal, ZERO
from bizos.app.models.contact import Contact
from bizos.app.models.customer_enums import ContactType, CustomerLedgerStatus
from bizos.app.models.customer_ledger_entry import CustomerLedgerEntry

logger = logging.getLogger("bizos.customers")


@dataclass
class StatementLine:
    entry_id: int
    date: datetime
    description: str
    debit: Decimal
    credit: Decimal
    balance_after: Decimal
    status: str
    reference: Optional[str]


async def _get_contact(db: AsyncSession, contact_id: int, for_update: bool = False) -> Contact:
    query = select(Contact).where(Contact.id == contact_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    contact = (await db.execute(query)).scalar_one_or_none()
    if not contact:
        raise NotFoundError("Contact", contact_id)
    return contact


async def create_contact(
    db: AsyncSession,
    name: str,
    type: ContactType = ContactType.CUSTOMER,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    wallet_balance: Any = ZERO
) -> Contact:
    if not name or not name.strip():
        raise ValidationError("Contact name is required")

    contact = Contact(
        name=name.strip(),
        type=ContactType(type),
        phone=phone,
        email=email,
        wallet_balance=to_decimal(wallet_balance, "wallet_balance"),
        loyalty_points=ZERO
    )
    db.add(contact)
    await db.commit()
    return contact


async def record_wallet_deposit(
    db: AsyncSession,
    contact_id: int,
    amount: Any,
    notes: Optional[str] = None,
    reference: Optional[str] = None
) -> CustomerLedgerEntry:
    """
    Record a wallet deposit awaiting confirmation.

    The wallet balance is not touched; ``balance_after`` snapshots the
    current balance until the deposit is confirmed.
    """
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError("Deposit amount must be greater than 0")

    contact = await _get_contact(db, contact_id)

    entry = CustomerLedgerEntry(
        contact_id=contact.id,
        entry_date=utcnow(),
        description=notes or "Wallet Deposit (Pending)",
        reference=reference,
        debit=ZERO,
        credit=amount,
        balance_after=to_decimal(contact.wallet_balance),
        status=CustomerLedgerStatus.PENDING
    )
    db.add(entry)
    await db.commit()

    logger.info("Recorded pending deposit %s of %s for contact %s", entry.id, amount, contact_id)
    return entry


async def confirm_wallet_deposit(
    db: AsyncSession,
    entry_id: int,
    user_id: Optional[int] = None,
    cash_account_id: Optional[int] = None
) -> CustomerLedgerEntry:
    """
    Apply a pending deposit to the wallet and post it to the general ledger.

    Posts Dr cash (``cash_account_id`` or Cash on Hand) / Cr Customer
    Deposits. The wallet update, the status change and the journal commit
    together. The entry is locked and re-read before its status is checked,
    so overlapping confirmations apply the deposit once.

    Raises:
        NotFoundError: Unknown entry, contact or cash account
        ValidationError: Entry already confirmed or has no positive credit
    """
    result = await db.execute(
        select(CustomerLedgerEntry)
        .where(CustomerLedgerEntry.id == entry_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise NotFoundError("Customer ledger entry", entry_id)

    if entry.status == CustomerLedgerStatus.CONFIRMED:
        raise ValidationError("Deposit already confirmed", details={"entry_id": entry_id})

    amount = to_decimal(entry.credit)
    if amount <= 0:
        raise ValidationError("Invalid deposit amount", details={"entry_id": entry_id})

    contact = await _get_contact(db, entry.contact_id, for_update=True)

    try:
        new_balance = to_decimal(contact.wallet_balance) + amount
        contact.wallet_balance = new_balance

        entry.status = CustomerLedgerStatus.CONFIRMED
        entry.balance_after = new_balance
        entry.reconciled_by_id = user_id
        entry.reconciled_at = utcnow()

        if cash_account_id is None:
            cash_account_id = (await ensure_standard_account(db, CASH_ON_HAND_CODE)).id
        deposits = await ensure_standard_account(db, CUSTOMER_DEPOSITS_CODE)

        await LedgerService.post_transaction(
            db,
            description=f"Wallet Funding - {contact.name}",
            date=utcnow(),
            entries=[
                JournalLine(account_id=cash_account_id, debit=amount),
                JournalLine(account_id=deposits.id, credit=amount),
            ],
            reference=f"CLE-{entry.id}",
            metadata={"type": "WALLET_FUND", "customer_ledger_entry_id": entry.id},
            created_by_id=user_id,
            commit=False
        )
        await db.commit()
    except (SQLAlchemyError, NotFoundError, ValidationError):
        await db.rollback()
        raise

    logger.info("Confirmed deposit %s for contact %s; wallet now %s", entry.id, contact.id, new_balance)
    return entry


async def record_customer_charge(
    db: AsyncSession,
    contact_id: int,
    amount: Any,
    description: str,
    reference: Optional[str] = None
) -> CustomerLedgerEntry:
    """
    Bill a customer (credit sale). Lowers the wallet balance immediately.
    """
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError("Charge amount must be greater than 0")

    contact = await _get_contact(db, contact_id, for_update=True)
    new_balance = to_decimal(contact.wallet_balance) - amount
    contact.wallet_balance = new_balance

    entry = CustomerLedgerEntry(
        contact_id=contact.id,
        entry_date=utcnow(),
        description=description,
        reference=reference,
        debit=amount,
        credit=ZERO,
        balance_after=new_balance,
        status=CustomerLedgerStatus.CONFIRMED
    )
    db.add(entry)
    await db.commit()

    return entry


async def get_customer_statement(
    db: AsyncSession,
    contact_id: int,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Chronological statement with a running balance (debit minus credit).

    A positive running balance means the customer owes us. When
    ``start_date`` is given, the opening balance is the sum of all earlier
    entries.
    """
    await _get_contact(db, contact_id)

    opening = ZERO
    if start_date:
        result = await db.execute(
            select(
                func.coalesce(func.sum(CustomerLedgerEntry.debit), 0),
                func.coalesce(func.sum(CustomerLedgerEntry.credit), 0),
            ).where(
                CustomerLedgerEntry.contact_id == contact_id,
                CustomerLedgerEntry.entry_date < start_date
            )
        )
        prior_debits, prior_credits = result.one()
        opening = to_decimal(prior_debits) - to_decimal(prior_credits)

    query = select(CustomerLedgerEntry).where(CustomerLedgerEntry.contact_id == contact_id)
    if start_date:
        query = query.where(CustomerLedgerEntry.entry_date >= start_date)
    if end_date:
        query = query.where(CustomerLedgerEntry.entry_date <= end_date)
    query = query.order_by(CustomerLedgerEntry.entry_date, CustomerLedgerEntry.id)

    entries = (await db.execute(query)).scalars().all()

    running = opening
    lines: List[StatementLine] = []
    for entry in entries:
        debit = to_decimal(entry.debit)
        credit = to_decimal(entry.credit)
        running += debit - credit
        lines.append(StatementLine(
            entry_id=entry.id,
            date=entry.entry_date,
            description=entry.description,
            debit=debit,
            credit=credit,
            balance_after=running,
            status=entry.status.value,
            reference=entry.reference,
        ))

    return {
        "contact_id": contact_id,
        "opening_balance": opening,
        "closing_balance": running,
        "lines": lines,
    }
