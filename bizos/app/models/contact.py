"""
Contact database model.

Customers and vendors. Customers carry a wallet and loyalty points.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, Enum, Numeric
from bizos.app.db.session import Base, utcnow
from bizos.app.models.customer_enums import ContactType


class Contact(Base):
    """
    Contact model.
    
    ``wallet_balance`` below zero means the customer owes us; above zero
    is prepaid store credit.
    """
    __tablename__ = "contacts"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(Enum(ContactType), default=ContactType.CUSTOMER, nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    
    wallet_balance = Column(Numeric(18, 2), default=Decimal("0"), nullable=False)
    credit_score = Column(Integer, default=50, nullable=False)
    loyalty_points = Column(Numeric(18, 4), default=Decimal("0"), nullable=False)
    
    status = Column(String(20), default="ACTIVE", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    def __repr__(self):
        return f"<Contact(id={self.id}, name='{self.name}', wallet={self.wallet_balance})>"
