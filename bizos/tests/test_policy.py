"""
Tests for the capability policy.
"""

import pytest

from bizos.app.core.policy import ALL_CAPABILITIES, Capability, ROLE_DEFAULTS, evaluate_policy
from bizos.app.models.enums import UserRole


@pytest.mark.parametrize("capability", sorted(ALL_CAPABILITIES))
def test_admin_holds_every_capability(capability):
    assert evaluate_policy(UserRole.ADMIN, [], capability)
    assert evaluate_policy("ADMIN", None, capability)


def test_role_defaults():
    assert evaluate_policy(UserRole.ACCOUNTANT, [], Capability.FINANCE_MAINTAIN)
    assert evaluate_policy(UserRole.MANAGER, [], Capability.FINANCE_POST)
    assert evaluate_policy(UserRole.CASHIER, [], Capability.LOYALTY_REDEEM)

    assert not evaluate_policy(UserRole.MANAGER, [], Capability.FINANCE_MAINTAIN)
    assert not evaluate_policy(UserRole.CASHIER, [], Capability.FINANCE_POST)
    assert not evaluate_policy(UserRole.ACCOUNTANT, [], Capability.USERS_MANAGE)


def test_explicit_permission_extends_role():
    assert not evaluate_policy(UserRole.USER, [], Capability.FINANCE_READ)
    assert evaluate_policy(UserRole.USER, [Capability.FINANCE_READ], Capability.FINANCE_READ)
    assert evaluate_policy(UserRole.CASHIER, [Capability.FINANCE_POST], Capability.FINANCE_POST)


@pytest.mark.parametrize("role", [None, "", "SUPERUSER", "admin"])
def test_unknown_role_is_denied(role):
    assert not evaluate_policy(role, list(ALL_CAPABILITIES), Capability.FINANCE_READ)


def test_every_role_has_defaults_within_known_capabilities():
    for role in UserRole:
        assert ROLE_DEFAULTS[role] <= ALL_CAPABILITIES
