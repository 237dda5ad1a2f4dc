from app.utils.login_security import check_lockout, rate_limit, register_login_attempt

__all__ = [
    "check_lockout",
    "rate_limit",
    "register_login_attempt",
]
