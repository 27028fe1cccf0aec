"""
Authentication dependencies for FastAPI.

``get_current_user`` turns a bearer token into the principal dict used by
every protected endpoint:

    {"sub", "user_id", "role", "permissions", "token", "exp"}

Role and permissions come from the database, not the token, so a change
made by an administrator applies on the next request.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from bizos.app.core.exceptions import AuthenticationError
from bizos.app.core.jwt import decode_access_token
from bizos.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from bizos.app.db.session import get_db
from bizos.app.models.user import User

bearer_scheme = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    Resolve and vet the caller.

    Raises:
        AuthenticationError: Invalid or expired token, revoked token, revoked
            user or unknown user
        HTTPException: 403 if the account has been deactivated
    """
    token = credentials.credentials

    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    if await is_token_revoked(token):
        raise AuthenticationError("Token has been revoked")

    # Set when the user is blocked
    if await are_user_tokens_revoked(user_id):
        raise AuthenticationError("User access has been revoked")

    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    return {
        "sub": user.username,
        "user_id": user.id,
        "role": user.role.value,
        "permissions": list(user.permissions or []),
        "token": token,
        "exp": payload.get("exp"),
    }
