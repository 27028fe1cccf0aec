"""
Maintenance Lock database model.

Serializes ledger maintenance runs through a primary-key constraint.
"""

from sqlalchemy import Column, String, DateTime
from bizos.app.db.session import Base, utcnow


class MaintenanceLock(Base):
    """
    Maintenance Lock model.
    
    A row exists while a run holds the lock. A second insert with the same
    name violates the primary key, which is how contention is detected.
    """
    __tablename__ = "maintenance_locks"
    
    lock_name = Column(String(100), primary_key=True)
    holder = Column(String(100), nullable=True)
    acquired_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    def __repr__(self):
        return f"<MaintenanceLock(lock_name='{self.lock_name}', holder='{self.holder}')>"
