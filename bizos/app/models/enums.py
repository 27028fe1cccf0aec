"""
User roles enumeration.

Defines the role types for the business operating system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        ADMIN: Supreme user with every capability
        MANAGER: Runs an outlet; posts journals, manages customers and loyalty
        ACCOUNTANT: Owns the books; posts journals and runs ledger maintenance
        CASHIER: Point of sale; earns and redeems loyalty points
        USER: Default role with no implicit capabilities
    """
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    ACCOUNTANT = "ACCOUNTANT"
    CASHIER = "CASHIER"
    USER = "USER"
