"""
Security guards for capability-based access control.

Provides dependencies for protecting endpoints. All decisions are delegated
to ``evaluate_policy``.
"""

from fastapi import Depends, HTTPException, status
from bizos.app.core.dependencies import get_current_user
from bizos.app.core.policy import evaluate_policy
from bizos.app.core.exceptions import InsufficientPermissionsError


def require_capability(capability: str):
    """
    Dependency factory for capability-based access control.
    
    Usage:
        @router.post("/finance/transactions")
        async def post(current_user: dict = Depends(require_capability(Capability.FINANCE_POST))):
            ...
    
    Args:
        capability: Capability string the caller must hold
        
    Returns:
        FastAPI dependency function that validates the caller
        
    Raises:
        HTTPException 403 if the token carries no role
        InsufficientPermissionsError if the policy denies the capability
    """
    async def capability_checker(current_user: dict = Depends(get_current_user)) -> dict:
        role = current_user.get("role")
        
        if not role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )
        
        if not evaluate_policy(role, current_user.get("permissions"), capability):
            raise InsufficientPermissionsError(
                f"Access denied. Missing permission: {capability}",
                details={"capability": capability}
            )
        
        return current_user
    
    return capability_checker
