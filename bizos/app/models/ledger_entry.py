"""
Ledger Entry database model.

One debit or credit line of a double-entry transaction.
"""

from sqlalchemy import Column, Integer, ForeignKey, Enum, String, Numeric
from sqlalchemy.orm import relationship
from bizos.app.db.session import Base
from bizos.app.models.ledger_enums import EntryDirection


class LedgerEntry(Base):
    """
    Ledger Entry model.
    
    ``amount`` is non-negative; the sign lives in ``direction``.
    """
    __tablename__ = "ledger_entries"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Linkage
    transaction_id = Column(Integer, ForeignKey('ledger_transactions.id'), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)
    
    # Financials
    amount = Column(Numeric(18, 2), nullable=False)
    direction = Column(Enum(EntryDirection), nullable=False)
    description = Column(String(500), nullable=True)
    
    transaction = relationship("Transaction", back_populates="entries")
    account = relationship("Account")
    
    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, direction='{self.direction.value}', amount={self.amount})>"
