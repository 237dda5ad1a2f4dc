import contextvars

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_user_email: contextvars.ContextVar[str] = contextvars.ContextVar("user_email", default="-")


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def set_user_email(email: str) -> None:
    _user_email.set(email)


def get_user_email() -> str:
    return _user_email.get()


def clear_context() -> None:
    _request_id.set("-")
    _user_email.set("-")
