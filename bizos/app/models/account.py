"""
Account database model.

Chart of accounts. ``balance`` is a cached value derived from the
account's ledger entries.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Numeric
from bizos.app.db.session import Base, utcnow
from bizos.app.models.ledger_enums import AccountType, DEBIT_NORMAL_TYPES


class Account(Base):
    """
    Account model.
    
    The cached ``balance`` is moved incrementally by posting and repair and
    recomputed from ledger entries by reconciliation. ``version`` is the
    optimistic lock counter: an UPDATE against a stale row raises
    ``StaleDataError``.
    """
    __tablename__ = "accounts"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(Enum(AccountType), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    
    balance = Column(Numeric(18, 2), default=Decimal("0"), nullable=False)
    currency = Column(String(3), default="NGN", nullable=False)
    
    # Created by the system (suspense, seeded chart) rather than a user
    is_system = Column(Boolean, default=False, nullable=False)
    
    version = Column(Integer, nullable=False)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    
    __mapper_args__ = {"version_id_col": version}
    
    @property
    def is_debit_normal(self) -> bool:
        return self.type in DEBIT_NORMAL_TYPES
    
    def __repr__(self):
        return f"<Account(id={self.id}, code='{self.code}', type='{self.type.value}', balance={self.balance})>"
