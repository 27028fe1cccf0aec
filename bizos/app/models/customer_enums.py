"""
Customer and loyalty enumerations.
"""

import enum


class ContactType(str, enum.Enum):
    """Contact type enumeration."""
    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"
    BOTH = "BOTH"


class CustomerLedgerStatus(str, enum.Enum):
    """Customer ledger entry status enumeration."""
    PENDING = "PENDING"  # Recorded, wallet not yet credited
    CONFIRMED = "CONFIRMED"  # Applied to the wallet balance


class LoyaltyLogType(str, enum.Enum):
    """Loyalty log type enumeration."""
    EARN = "EARN"
    REDEEM = "REDEEM"
