"""
Loyalty Log database model.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, Numeric, ForeignKey
from bizos.app.db.session import Base, utcnow
from bizos.app.models.customer_enums import LoyaltyLogType


class LoyaltyLog(Base):
    """
    Loyalty Log model.
    
    Points are signed: positive for EARN, negative for REDEEM.
    """
    __tablename__ = "loyalty_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    contact_id = Column(Integer, ForeignKey('contacts.id'), nullable=False, index=True)
    outlet_id = Column(Integer, ForeignKey('outlets.id'), nullable=True)
    
    points = Column(Numeric(18, 4), nullable=False)
    type = Column(Enum(LoyaltyLogType), nullable=False)
    reference_id = Column(String(100), nullable=True)  # e.g. Sale ID
    description = Column(String(500), nullable=True)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    
    def __repr__(self):
        return f"<LoyaltyLog(id={self.id}, type='{self.type.value}', points={self.points})>"
