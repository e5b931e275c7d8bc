"""JWT token revocation using a Redis blacklist.

Single tokens are blacklisted on logout until their natural expiry.
Password changes revoke every token a user was issued before that moment.

Checks fail closed: if Redis is unreachable the token is treated as revoked.
"""

import logging
import time

import redis.asyncio as redis

from cuptrace.utils.cache import get_redis

logger = logging.getLogger(__name__)


class TokenRevocation:
    """Manage JWT token revocation with Redis."""

    @staticmethod
    async def revoke_token(token: str, expires_at: float) -> bool:
        """Add token to the revocation list until ``expires_at`` (unix time)."""
        ttl = int(expires_at - time.time())
        if ttl <= 0:
            # Already expired, nothing to blacklist
            return True

        try:
            redis_client = await get_redis()
            await redis_client.setex(f"revoked:{token}", ttl, str(int(time.time())))
            return True
        except redis.RedisError as e:
            logger.error(f"Failed to revoke token: {e}")
            return False

    @staticmethod
    async def is_revoked(token: str) -> bool:
        try:
            redis_client = await get_redis()
            exists = await redis_client.exists(f"revoked:{token}")
            return exists > 0
        except redis.RedisError as e:
            logger.error(f"Failed to check token revocation: {e}")
            return True

    @staticmethod
    async def revoke_all_user_tokens(user_id: str, duration: int = 86400 * 7) -> bool:
        """Revoke every token issued to ``user_id`` up to now.

        ``duration`` should cover the longest token lifetime (the refresh
        token) so nothing issued earlier can outlive the marker.
        """
        try:
            redis_client = await get_redis()
            await redis_client.setex(f"revoked:user:{user_id}", duration, repr(time.time()))
            return True
        except redis.RedisError as e:
            logger.error(f"Failed to revoke user tokens: {e}")
            return False

    @staticmethod
    async def is_user_revoked(user_id: str, issued_at: float) -> bool:
        """True if the user's tokens issued at or before the marker are revoked."""
        try:
            redis_client = await get_redis()
            revoked_at = await redis_client.get(f"revoked:user:{user_id}")
        except redis.RedisError as e:
            logger.error(f"Failed to check user revocation: {e}")
            return True

        if revoked_at is None:
            return False
        return issued_at <= float(revoked_at)
