from __future__ import annotations

from datetime import datetime, timedelta, timezone
import uuid
from functools import lru_cache
from typing import Any

from passlib.context import CryptContext
from jose import JWTError, jwt

from app.core.settings import settings


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    min_len = settings.password_min_length
    if len(password) < min_len:
        raise ValueError(f"Password too short; minimum {min_len} characters")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class JWTKeyError(RuntimeError):
    pass


def _uses_shared_secret() -> bool:
    return settings.jwt_algorithm.upper().startswith("HS")


@lru_cache(maxsize=1)
def _load_private_key() -> str:
    if _uses_shared_secret():
        return settings.secret_key
    if settings.jwt_private_key:
        return settings.jwt_private_key
    if settings.jwt_private_key_path:
        return _read_key(settings.jwt_private_key_path)
    raise JWTKeyError("JWT private key not configured")


@lru_cache(maxsize=1)
def _load_public_key() -> str:
    if _uses_shared_secret():
        return settings.secret_key
    if settings.jwt_public_key:
        return settings.jwt_public_key
    if settings.jwt_public_key_path:
        return _read_key(settings.jwt_public_key_path)
    raise JWTKeyError("JWT public key not configured")


def _read_key(path: str) -> str:
    with open(path, "r", encoding="utf-8") as key_file:
        return key_file.read()


def _encode(claims: dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {**claims, "type": token_type, "iat": now, "exp": now + expires_delta}
    return jwt.encode(to_encode, _load_private_key(), algorithm=settings.jwt_algorithm)


def create_access_token(
    subject: str, user_id: int | None = None, expires_delta: timedelta | None = None
) -> str:
    claims: dict[str, Any] = {"sub": subject}
    if user_id is not None:
        claims["uid"] = user_id
    return _encode(
        claims, "access", expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )


def create_refresh_token(
    subject: str, user_id: int | None = None, expires_delta: timedelta | None = None
) -> str:
    claims: dict[str, Any] = {"sub": subject, "jti": str(uuid.uuid4())}
    if user_id is not None:
        claims["uid"] = user_id
    return _encode(
        claims, "refresh", expires_delta or timedelta(minutes=settings.refresh_token_expire_minutes)
    )


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, _load_public_key(), algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if expected_type and payload.get("type") != expected_type:
        raise ValueError(f"Unexpected token type: {payload.get('type')}")
    return payload


class PasswordHasher:
    """Irreversible password hashing handed to services."""

    def hash(self, password: str) -> str:
        return get_password_hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        return verify_password(password, hashed_password)


class TokenIssuer:
    """Issues and validates the bearer tokens carrying a user's email and id."""

    def issue_pair(self, email: str, user_id: int | None) -> tuple[str, str]:
        return create_access_token(email, user_id), create_refresh_token(email, user_id)

    def decode(self, token: str, expected_type: str) -> dict[str, Any]:
        return decode_token(token, expected_type=expected_type)
