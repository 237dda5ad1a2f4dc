from decimal import Decimal

from pydantic import EmailStr

from app.schemas.common import CamelModel
from app.schemas.users import UserOut


class SignupRequest(CamelModel):
    name: str | None = None
    email: EmailStr | None = None
    password: str | None = None
    phone: str | None = None
    income: Decimal | None = None
    role: str | None = None


class LoginRequest(CamelModel):
    email: EmailStr | None = None
    password: str | None = None


class RefreshRequest(CamelModel):
    refresh_token: str


class ChangePasswordRequest(CamelModel):
    current_password: str | None = None
    new_password: str | None = None


class AuthResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut
