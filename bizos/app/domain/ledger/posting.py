"""
Ledger Posting Service (Domain Logic).

Records balanced double-entry transactions and keeps the cached account
balances in step. Must be atomic: either the header, every entry and every
balance change persist, or none of them do.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from bizos.app.core.config import settings
from bizos.app.core.exceptions import ConcurrencyError, ImbalanceError, NotFoundError, ValidationError
from bizos.app.db.session import utcnow
from bizos.app.models.account import Account
from bizos.app.models.ledger_entry import LedgerEntry
from bizos.app.models.ledger_enums import AccountType, DEBIT_NORMAL_TYPES, EntryDirection
from bizos.app.models.transaction import Transaction

logger = logging.getLogger("bizos.ledger")

ZERO = Decimal("0")


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """Coerce user input (str, int, float, Decimal) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid decimal value for {field}: {value!r}", details={"field": field})


def signed_balance_change(account_type: AccountType, direction: EntryDirection, amount: Decimal) -> Decimal:
    """
    Normal-balance rule.

    Debit-normal accounts (ASSET, EXPENSE) grow on debit; every other type
    grows on credit.
    """
    if AccountType(account_type) in DEBIT_NORMAL_TYPES:
        return amount if direction == EntryDirection.DEBIT else -amount
    return amount if direction == EntryDirection.CREDIT else -amount


def compute_balance(account_type: AccountType, debits: Decimal, credits: Decimal) -> Decimal:
    """Aggregate form of ``signed_balance_change``."""
    if AccountType(account_type) in DEBIT_NORMAL_TYPES:
        return debits - credits
    return credits - debits


@dataclass
class JournalLine:
    """One requested line of a posting. Exactly one of debit/credit is non-zero."""
    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit > 0 else self.credit

    @property
    def direction(self) -> EntryDirection:
        return EntryDirection.DEBIT if self.debit > 0 else EntryDirection.CREDIT


def _coerce_line(raw: Union[JournalLine, Mapping[str, Any], Any]) -> JournalLine:
    if isinstance(raw, JournalLine):
        line = raw
    elif isinstance(raw, Mapping):
        line = JournalLine(
            account_id=raw.get("account_id"),
            debit=raw.get("debit"),
            credit=raw.get("credit"),
            description=raw.get("description"),
        )
    else:
        # Pydantic models and other attribute carriers
        line = JournalLine(
            account_id=getattr(raw, "account_id", None),
            debit=getattr(raw, "debit", None),
            credit=getattr(raw, "credit", None),
            description=getattr(raw, "description", None),
        )

    if line.account_id is None:
        raise ValidationError("Every entry needs an account_id")

    line.debit = to_decimal(line.debit, "debit")
    line.credit = to_decimal(line.credit, "credit")
    return line


def validate_lines(entries: Iterable[Any]) -> List[JournalLine]:
    """
    Check a posting request without touching the database.

    Raises:
        ValidationError: Fewer than two lines, negative amounts, or a line
            that is not exactly one of debit/credit
        ImbalanceError: Debits and credits differ by more than the tolerance
    """
    lines = [_coerce_line(raw) for raw in entries or []]

    if len(lines) < 2:
        raise ValidationError("A transaction needs at least two entries", details={"entries": len(lines)})

    for index, line in enumerate(lines):
        if line.debit < 0 or line.credit < 0:
            raise ValidationError("Debit and credit must be non-negative", details={"entry": index})
        if (line.debit > 0) == (line.credit > 0):
            raise ValidationError(
                "Each entry must have exactly one of debit or credit greater than zero",
                details={"entry": index}
            )

    total_debit = sum((line.debit for line in lines), ZERO)
    total_credit = sum((line.credit for line in lines), ZERO)

    if abs(total_debit - total_credit) > settings.balance_tolerance:
        raise ImbalanceError(total_debit, total_credit)

    return lines


class LedgerService:

    @staticmethod
    async def post_transaction(
        db: AsyncSession,
        description: str,
        date: Optional[datetime],
        entries: Iterable[Any],
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_by_id: Optional[int] = None,
        commit: bool = True
    ) -> Transaction:
        """
        Post a balanced double-entry transaction.

        Flow:
        1. Validate lines (count, signs, balance) - no writes
        2. Resolve every referenced account - no writes
        3. Create Transaction header and LedgerEntry rows
        4. Move each account's cached balance by the normal-balance rule
        5. Flush (and commit unless the caller owns the transaction)

        Args:
            db: Database session
            description: Journal description
            date: Business date (defaults to now)
            entries: Lines as JournalLine, mappings or objects with
                account_id/debit/credit/description
            reference: Optional external reference (sale id, payroll run)
            metadata: Optional JSON metadata
            created_by_id: Posting user
            commit: Commit on success. Pass False to compose with other
                writes; the caller then commits or rolls back.

        Returns:
            The created Transaction with its entries

        Raises:
            ValidationError, ImbalanceError, NotFoundError
            ConcurrencyError: A referenced account changed underneath the
                posting; nothing was written
        """
        if not description or not description.strip():
            raise ValidationError("Transaction description is required")

        lines = validate_lines(entries)

        account_ids = {line.account_id for line in lines}
        # Locked and re-read so overlapping postings serialize on current balances
        result = await db.execute(
            select(Account)
            .where(Account.id.in_(account_ids))
            .order_by(Account.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        accounts = {account.id: account for account in result.scalars().all()}

        missing = sorted(account_ids - accounts.keys())
        if missing:
            raise NotFoundError("Account", missing[0])

        try:
            transaction = Transaction(
                description=description,
                date=date or utcnow(),
                reference=reference,
                meta_data=metadata,
                created_by_id=created_by_id,
                entries=[
                    LedgerEntry(
                        account_id=line.account_id,
                        amount=line.amount,
                        direction=line.direction,
                        description=line.description or description
                    )
                    for line in lines
                ]
            )
            db.add(transaction)

            for line in lines:
                account = accounts[line.account_id]
                account.balance = (account.balance or ZERO) + signed_balance_change(
                    account.type, line.direction, line.amount
                )

            await db.flush()
            if commit:
                await db.commit()
        except StaleDataError as exc:
            await db.rollback()
            logger.warning("Posting '%s' lost an update race: %s", description, exc)
            raise ConcurrencyError(
                "Account balance changed during posting",
                details={"account_ids": sorted(account_ids)}
            )
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Posting '%s' failed; rolled back", description)
            raise

        logger.info(
            "Posted transaction %s '%s' with %d entries",
            transaction.id, description, len(lines)
        )
        return transaction

    @staticmethod
    async def get_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
        result = await db.execute(
            select(Transaction)
            .options(selectinload(Transaction.entries))
            .where(Transaction.id == transaction_id)
        )
        transaction = result.scalar_one_or_none()
        if not transaction:
            raise NotFoundError("Transaction", transaction_id)
        return transaction

    @staticmethod
    async def list_transactions(db: AsyncSession, page: int = 1, page_size: int = 50) -> Dict[str, Any]:
        """Paginated journal, newest first, with entries."""
        total = (await db.execute(select(func.count(Transaction.id)))).scalar() or 0

        result = await db.execute(
            select(Transaction)
            .options(selectinload(Transaction.entries))
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )

        return {
            "transactions": list(result.scalars().all()),
            "total": total,
            "page": page,
            "page_size": page_size,
        }
