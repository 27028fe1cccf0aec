"""
Ledger Transaction database model.

Header row grouping the ledger entries of one business event.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, JSON, ForeignKey
from sqlalchemy.orm import relationship
from bizos.app.db.session import Base, utcnow
from bizos.app.models.ledger_enums import TransactionStatus


class Transaction(Base):
    """
    Transaction model.
    
    Owns a balanced set of LedgerEntry rows: debits equal credits.
    """
    __tablename__ = "ledger_transactions"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    description = Column(String(500), nullable=False)
    date = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    reference = Column(String(100), nullable=True, index=True)
    status = Column(Enum(TransactionStatus), default=TransactionStatus.POSTED, nullable=False)
    meta_data = Column(JSON, nullable=True)
    
    created_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    entries = relationship("LedgerEntry", back_populates="transaction", order_by="LedgerEntry.id")
    
    def __repr__(self):
        return f"<Transaction(id={self.id}, description='{self.description}', status='{self.status.value}')>"
