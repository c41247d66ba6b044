"""
Logout support: a Redis blacklist of revoked bearer tokens.

Entries expire together with the token they block. When Redis is
unreachable, checks fail open: the request is allowed and a warning is
logged.
"""

import logging
from typing import Optional
from redis.exceptions import RedisError
from backend.app.core import redis_client as redis_module
from backend.app.core.jwt import access_token_lifetime

logger = logging.getLogger(__name__)

TOKEN_BLACKLIST_PREFIX = "blacklist:token:"


async def revoke_token(token: str, user_id: int, ttl_seconds: Optional[int] = None) -> bool:
    """
    Blacklist `token` for `ttl_seconds` (default: a full token lifetime).

    Returns:
        True if the entry was written, False if Redis was unavailable
    """
    ttl = ttl_seconds or int(access_token_lifetime().total_seconds())
    try:
        await redis_module.redis_client.set(f"{TOKEN_BLACKLIST_PREFIX}{token}", str(user_id), ex=ttl)
        return True
    except (RedisError, OSError) as exc:
        logger.error("Error revoking token for user %s: %s", user_id, exc)
        return False


async def is_token_revoked(token: str) -> bool:
    try:
        return await redis_module.redis_client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}") > 0
    except (RedisError, OSError) as exc:
        logger.warning("Token revocation check unavailable, allowing request: %s", exc)
        return False
