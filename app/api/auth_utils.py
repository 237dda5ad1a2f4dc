from app.core.settings import settings
from app.utils.login_security import check_lockout, rate_limit, register_login_attempt


async def enforce_login_limits(ip: str, email: str) -> None:
    await rate_limit(f"ip:{ip}", limit=settings.rate_limit_per_minute, window_seconds=60)
    await rate_limit(f"email:{email}", limit=settings.rate_limit_per_minute, window_seconds=60)
    await check_lockout(email)


async def record_login_attempt(email: str, success: bool) -> bool:
    return await register_login_attempt(email, success)
