"""
Outlet database model.

Point-of-sale location and its loyalty/tax configuration.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric
from bizos.app.db.session import Base, utcnow


class Outlet(Base):
    """
    Outlet model.
    
    loyalty_earning_rate: points earned per currency unit paid.
    loyalty_redemption_rate: currency value of one point.
    """
    __tablename__ = "outlets"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    
    is_loyalty_enabled = Column(Boolean, default=True, nullable=False)
    loyalty_earning_rate = Column(Numeric(12, 6), default=Decimal("0.05"), nullable=False)
    loyalty_redemption_rate = Column(Numeric(12, 6), default=Decimal("1.0"), nullable=False)
    tax_rate = Column(Numeric(12, 6), default=Decimal("0"), nullable=False)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    def __repr__(self):
        return f"<Outlet(id={self.id}, name='{self.name}')>"
