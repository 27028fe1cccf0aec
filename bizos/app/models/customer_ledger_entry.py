"""
Customer Ledger Entry database model.

Customer-facing receivable/wallet activity. Feeds credit scoring.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, Enum, Numeric, ForeignKey
from bizos.app.db.session import Base, utcnow
from bizos.app.models.customer_enums import CustomerLedgerStatus


class CustomerLedgerEntry(Base):
    """
    Customer Ledger Entry model.
    
    Debit = customer was billed (sale). Credit = customer paid.
    PENDING entries have not been applied to the wallet yet.
    """
    __tablename__ = "customer_ledger_entries"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    contact_id = Column(Integer, ForeignKey('contacts.id'), nullable=False, index=True)
    
    entry_date = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    description = Column(String(500), nullable=False)
    reference = Column(String(100), nullable=True)
    
    debit = Column(Numeric(18, 2), default=Decimal("0"), nullable=False)
    credit = Column(Numeric(18, 2), default=Decimal("0"), nullable=False)
    balance_after = Column(Numeric(18, 2), nullable=False)
    
    status = Column(Enum(CustomerLedgerStatus), default=CustomerLedgerStatus.CONFIRMED, nullable=False)
    reconciled_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    reconciled_at = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    def __repr__(self):
        return f"<CustomerLedgerEntry(id={self.id}, debit={self.debit}, credit={self.credit}, status='{self.status.value}')>"
