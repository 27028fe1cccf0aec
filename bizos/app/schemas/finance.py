"""
Finance API Schema Definitions.

Pydantic schemas for accounts, journal postings and ledger maintenance.
Money travels as Decimal (serialized as strings in JSON).
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
from bizos.app.models.ledger_enums import AccountType, EntryDirection, TransactionStatus


class AccountCreate(BaseModel):
    """Schema for creating an account."""
    code: str = Field(..., min_length=1, max_length=20, description="Unique account code")
    name: str = Field(..., min_length=1, max_length=255)
    type: AccountType
    description: Optional[str] = Field(None, max_length=500)
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="Defaults to the configured currency")


class AccountResponse(BaseModel):
    """Schema for account response."""
    id: int
    code: str
    name: str
    type: AccountType
    description: Optional[str] = None
    balance: Decimal
    currency: str
    is_system: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AccountListResponse(BaseModel):
    """Schema for account list response."""
    accounts: List[AccountResponse]
    total: int


class SeedChartResponse(BaseModel):
    """Schema for chart of accounts seeding result."""
    created: List[AccountResponse]
    total_created: int


class JournalLineRequest(BaseModel):
    """One line of a posting. Exactly one of debit/credit must be positive."""
    account_id: int
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: Optional[str] = None


class TransactionCreate(BaseModel):
    """Schema for posting a journal transaction."""
    description: str = Field(..., min_length=1, max_length=500)
    date: Optional[datetime] = Field(None, description="Business date (defaults to now)")
    reference: Optional[str] = Field(None, max_length=100)
    metadata: Optional[Dict[str, Any]] = None
    entries: List[JournalLineRequest]


class LedgerEntryResponse(BaseModel):
    """Schema for ledger entry response."""
    id: int
    account_id: int
    amount: Decimal
    direction: EntryDirection
    description: Optional[str] = None

    class Config:
        from_attributes = True


class TransactionResponse(BaseModel):
    """Schema for transaction response."""
    id: int
    description: str
    date: datetime
    reference: Optional[str] = None
    status: TransactionStatus
    created_by_id: Optional[int] = None
    entries: List[LedgerEntryResponse]

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    """Schema for paginated journal response."""
    transactions: List[TransactionResponse]
    total: int
    page: int
    page_size: int


class MaintenanceResponse(BaseModel):
    """Schema for a ledger maintenance run."""
    task: str
    result: Dict[str, Any]
