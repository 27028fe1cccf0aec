"""
Ledger enumerations.
"""

import enum


class AccountType(str, enum.Enum):
    """Chart of accounts type enumeration."""
    ASSET = "ASSET"  # Debit-normal
    LIABILITY = "LIABILITY"  # Credit-normal
    EQUITY = "EQUITY"  # Credit-normal
    INCOME = "INCOME"  # Credit-normal
    EXPENSE = "EXPENSE"  # Debit-normal


DEBIT_NORMAL_TYPES = frozenset({AccountType.ASSET, AccountType.EXPENSE})


class EntryDirection(str, enum.Enum):
    """Ledger entry direction enumeration."""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    def flipped(self) -> "EntryDirection":
        return EntryDirection.CREDIT if self is EntryDirection.DEBIT else EntryDirection.DEBIT


class TransactionStatus(str, enum.Enum):
    """Journal transaction status enumeration."""
    POSTED = "POSTED"
    VOID = "VOID"
