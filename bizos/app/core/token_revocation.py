"""
Token revocation backed by Redis.

Two kinds of flags are kept, both expiring with the tokens they cover:

* a per-token blacklist entry, written on logout
* a per-user flag, written when an administrator blocks the user and
  cleared again on unblock

Every check fails open: if Redis is unreachable the request proceeds and
a warning is logged.
"""

import logging
from bizos.app.core import redis_client as redis_module
from bizos.app.core.config import settings
from bizos.app.core.jwt import remaining_lifetime_seconds

logger = logging.getLogger("bizos.auth")


def _token_key(token: str) -> str:
    return f"{settings.redis_key_prefix}:revoked-token:{token}"


def _user_key(user_id: int) -> str:
    return f"{settings.redis_key_prefix}:revoked-user:{user_id}"


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Blacklist a single token until it would have expired anyway.

    Returns:
        True if the entry was written, False if Redis was unavailable
    """
    try:
        await redis_module.redis_client.setex(
            _token_key(token), remaining_lifetime_seconds(token), str(user_id)
        )
    except Exception as e:
        logger.warning("Could not revoke token for user %s: %s", user_id, e)
        return False

    logger.info("Revoked token for user %s", user_id)
    return True


async def is_token_revoked(token: str) -> bool:
    try:
        return await redis_module.redis_client.exists(_token_key(token)) > 0
    except Exception as e:
        logger.warning("Token revocation check failed, allowing request: %s", e)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Invalidate every token issued to a user.

    The flag lives as long as the longest possible token, so tokens
    issued before the block can never be used again.
    """
    try:
        await redis_module.redis_client.setex(
            _user_key(user_id), settings.access_token_expire_minutes * 60, "1"
        )
    except Exception as e:
        logger.warning("Could not revoke tokens for user %s: %s", user_id, e)
        return False

    logger.info("Revoked all tokens for user %s", user_id)
    return True


async def are_user_tokens_revoked(user_id: int) -> bool:
    try:
        return await redis_module.redis_client.exists(_user_key(user_id)) > 0
    except Exception as e:
        logger.warning("User revocation check failed for %s, allowing request: %s", user_id, e)
        return False


async def clear_user_token_revocation(user_id: int) -> bool:
    """Lift the per-user flag after an unblock."""
    try:
        await redis_module.redis_client.delete(_user_key(user_id))
    except Exception as e:
        logger.warning("Could not clear token revocation for user %s: %s", user_id, e)
        return False
    return True
