import logging

from fastapi import HTTPException, status
from redis.exceptions import RedisError

from app.core.settings import settings
from app.utils.redis_client import get_redis_client

logger = logging.getLogger(__name__)


def _ttl(seconds: int) -> int:
    return max(1, seconds)


def _lockout_seconds() -> int:
    return _ttl(settings.login_lockout_minutes * 60)


async def rate_limit(key: str, limit: int, window_seconds: int) -> None:
    redis = get_redis_client()
    try:
        pipe = redis.pipeline()
        pipe.incr(f"login_rate:{key}")
        pipe.expire(f"login_rate:{key}", window_seconds)
        count, _ = await pipe.execute()
    except RedisError as exc:
        logger.warning("Login rate limit check skipped: %s", exc)
        return
    if count > limit:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts; try again later",
        )


async def check_lockout(email: str) -> None:
    redis = get_redis_client()
    try:
        locked = await redis.get(f"login_lock:{email}")
    except RedisError as exc:
        logger.warning("Login lockout check skipped: %s", exc)
        return
    if locked:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Account temporarily locked; try again later",
        )


async def register_login_attempt(email: str, success: bool) -> bool:
    """Track failures per email; returns True when this attempt locked the account."""
    redis = get_redis_client()
    fail_key = f"login_fail:{email}"
    lock_key = f"login_lock:{email}"
    try:
        if success:
            await redis.delete(fail_key, lock_key)
            return False
        attempts = await redis.incr(fail_key)
        await redis.expire(fail_key, _lockout_seconds())
        if attempts < settings.login_attempt_limit:
            return False
        await redis.setex(lock_key, _lockout_seconds(), 1)
        await redis.delete(fail_key)
    except RedisError as exc:
        logger.warning("Login attempt tracking skipped: %s", exc)
        return False
    logger.warning("Account %s locked after %s failed logins", email, settings.login_attempt_limit)
    return True
