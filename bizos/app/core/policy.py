"""
Capability policy.

Single place where a (role, permissions) pair is evaluated against a
required capability. Every privileged endpoint goes through
``evaluate_policy`` via the guards in ``bizos.app.core.guards``.
"""

from typing import Dict, FrozenSet, Iterable, Optional, Union

from bizos.app.models.enums import UserRole


class Capability:
    """Standardized capability constants."""
    FINANCE_READ = "finance:read"
    FINANCE_POST = "finance:post"
    FINANCE_MAINTAIN = "finance:maintain"
    CUSTOMERS_READ = "customers:read"
    CUSTOMERS_WRITE = "customers:write"
    LOYALTY_EARN = "loyalty:earn"
    LOYALTY_REDEEM = "loyalty:redeem"
    USERS_MANAGE = "users:manage"
    AUDIT_READ = "audit:read"


ALL_CAPABILITIES: FrozenSet[str] = frozenset(
    value for name, value in vars(Capability).items() if name.isupper()
)

# Capabilities every user of a role holds without explicit grants
ROLE_DEFAULTS: Dict[UserRole, FrozenSet[str]] = {
    UserRole.ADMIN: ALL_CAPABILITIES,
    UserRole.MANAGER: frozenset({
        Capability.FINANCE_READ,
        Capability.FINANCE_POST,
        Capability.CUSTOMERS_READ,
        Capability.CUSTOMERS_WRITE,
        Capability.LOYALTY_EARN,
        Capability.LOYALTY_REDEEM,
    }),
    UserRole.ACCOUNTANT: frozenset({
        Capability.FINANCE_READ,
        Capability.FINANCE_POST,
        Capability.FINANCE_MAINTAIN,
        Capability.CUSTOMERS_READ,
    }),
    UserRole.CASHIER: frozenset({
        Capability.CUSTOMERS_READ,
        Capability.LOYALTY_EARN,
        Capability.LOYALTY_REDEEM,
    }),
    UserRole.USER: frozenset(),
}


def evaluate_policy(
    role: Optional[Union[UserRole, str]],
    permissions: Optional[Iterable[str]],
    required_capability: str
) -> bool:
    """
    Decide whether a principal may exercise a capability.
    
    ADMIN is always allowed. Any other role is allowed when the capability
    is among its role defaults or its explicit permission grants.
    Unknown roles are denied.
    
    Args:
        role: UserRole or its string value (as carried in the JWT)
        permissions: Explicit capability grants for the user
        required_capability: Capability being requested
        
    Returns:
        True to allow, False to deny
    """
    if role is None:
        return False

    try:
        user_role = UserRole(role)
    except ValueError:
        return False

    if user_role == UserRole.ADMIN:
        return True

    if required_capability in ROLE_DEFAULTS.get(user_role, frozenset()):
        return True

    return required_capability in set(permissions or ())
