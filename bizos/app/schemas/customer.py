"""
Customer API Schema Definitions.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from bizos.app.models.customer_enums import ContactType, CustomerLedgerStatus


class ContactCreate(BaseModel):
    """Schema for creating a customer or vendor."""
    name: str = Field(..., min_length=1, max_length=255)
    type: ContactType = ContactType.CUSTOMER
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None


class ContactResponse(BaseModel):
    """Schema for contact response."""
    id: int
    name: str
    type: ContactType
    phone: Optional[str] = None
    email: Optional[str] = None
    wallet_balance: Decimal
    credit_score: int
    loyalty_points: Decimal
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class DepositCreate(BaseModel):
    """Schema for recording a wallet deposit."""
    amount: Decimal
    notes: Optional[str] = Field(None, max_length=500)
    reference: Optional[str] = Field(None, max_length=100)


class DepositConfirm(BaseModel):
    """Schema for confirming a pending deposit."""
    cash_account_id: Optional[int] = Field(None, description="Cash/bank account to debit (defaults to Cash on Hand)")


class ChargeCreate(BaseModel):
    """Schema for billing a customer on credit."""
    amount: Decimal
    description: str = Field(..., min_length=1, max_length=500)
    reference: Optional[str] = Field(None, max_length=100)


class CustomerLedgerEntryResponse(BaseModel):
    """Schema for customer ledger entry response."""
    id: int
    contact_id: int
    entry_date: datetime
    description: str
    reference: Optional[str] = None
    debit: Decimal
    credit: Decimal
    balance_after: Decimal
    status: CustomerLedgerStatus
    reconciled_by_id: Optional[int] = None
    reconciled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StatementLineResponse(BaseModel):
    """Schema for one statement line."""
    entry_id: int
    date: datetime
    description: str
    debit: Decimal
    credit: Decimal
    balance_after: Decimal
    status: str
    reference: Optional[str] = None

    class Config:
        from_attributes = True


class StatementResponse(BaseModel):
    """Schema for customer statement response."""
    contact_id: int
    opening_balance: Decimal
    closing_balance: Decimal
    lines: List[StatementLineResponse]


class CreditScoreResponse(BaseModel):
    """Schema for credit score response."""
    contact_id: int
    score: int
    grade: str
    total_sales: Decimal
    total_payments: Decimal
    current_debt: Decimal
    limit: Decimal
    utilization: Decimal
