from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import errors
from app.core.logging import audit_event
from app.core.security import PasswordHasher, TokenIssuer, pwd_context
from app.core.settings import settings
from app.models.user import User
from app.schemas.common import Role, parse_role
from app.services import validation
from app.services.storage.adapter import ImageStore
from app.services.storage.key_generator import KeyGenerator

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"

# Verified against when the email is unknown so both failure paths cost the same.
_FAKE_HASH = pwd_context.hash("not-a-real-password")


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True)
class AuthResult:
    access_token: str
    refresh_token: str
    user: User


class UserAccountService:
    """Registration, credentials and profile management for user accounts."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        images: ImageStore,
    ) -> None:
        self.db = db
        self.hasher = hasher
        self.tokens = tokens
        self.images = images

    async def _find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def _get_active_or_404(self, email: str) -> User:
        user = await self._find_by_email(email)
        if user is None or user.deleted:
            raise errors.ResourceNotFoundError.for_resource("User", email)
        return user

    def _issue(self, user: User) -> AuthResult:
        access, refresh = self.tokens.issue_pair(user.email, user.id)
        return AuthResult(access_token=access, refresh_token=refresh, user=user)

    def _verify(self, password: str, hashed_password: str | None) -> bool:
        if hashed_password:
            return self.hasher.verify(password, hashed_password)
        self.hasher.verify(password, _FAKE_HASH)
        return False

    def _discard_image(self, object_key: str | None, email: str) -> None:
        if not object_key:
            return
        try:
            self.images.remove(object_key)
        except (OSError, ValueError) as exc:
            logger.warning("Could not delete profile image %s for %s: %s", object_key, email, exc)

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        phone: str | None = None,
        income: Any = None,
        role: str | None = None,
    ) -> AuthResult:
        logger.info("Registering user with email: %s", email)
        errors.raise_for_errors(
            validation.validate_registration(name, email, password, phone, income, role)
        )
        resolved_role = parse_role(role) or Role.CUSTOMER
        if resolved_role is not Role.CUSTOMER and not settings.allow_privileged_signup:
            raise errors.AccessDeniedError(f"Self-registration as {resolved_role.value} is disabled")

        email = normalize_email(email)
        if await self._find_by_email(email) is not None:
            raise errors.ValidationError("Email already in use", errors={"email": "Email already in use"})

        try:
            hashed_password = self.hasher.hash(password)
        except ValueError as exc:
            raise errors.ValidationError(str(exc), errors={"password": str(exc)}) from exc

        user = User(
            name=name.strip(),
            email=email,
            hashed_password=hashed_password,
            phone=phone,
            income=Decimal(str(income)) if income is not None else None,
            role=resolved_role.value,
            deleted=False,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise errors.ValidationError(
                "Email already in use", errors={"email": "Email already in use"}
            ) from exc
        await self.db.refresh(user)
        logger.info("User registered successfully: %s", user.email)
        audit_event("user.registered", actor=user.email, user_id=user.id, role=user.role)
        return self._issue(user)

    async def login(self, email: str, password: str) -> AuthResult:
        logger.info("User login attempt: %s", email)
        user = await self._find_by_email(email)
        hashed = user.hashed_password if user is not None and not user.deleted else None
        if not self._verify(password, hashed):
            logger.warning("Rejected login for %s", email)
            raise errors.AuthenticationError(INVALID_CREDENTIALS)
        logger.info("User logged in successfully: %s", user.email)
        return self._issue(user)

    async def refresh(self, refresh_token: str) -> AuthResult:
        try:
            payload = self.tokens.decode(refresh_token, expected_type="refresh")
        except ValueError as exc:
            raise errors.AuthenticationError("Invalid refresh token") from exc
        subject = payload.get("sub")
        if not subject:
            raise errors.AuthenticationError("Invalid refresh token")
        user = await self.resolve_by_username(subject)
        if user.deleted:
            raise errors.AuthenticationError("Invalid refresh token")
        return self._issue(user)

    async def resolve_by_username(self, email: str) -> User:
        user = await self._find_by_email(email)
        if user is None:
            raise errors.AuthenticationError(f"User not found with email: {email}")
        return user

    async def get_profile(self, email: str) -> User:
        return await self._get_active_or_404(email)

    async def get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise errors.ResourceNotFoundError.for_resource("User", user_id)
        return user

    async def change_password(self, email: str, current_password: str, new_password: str) -> None:
        logger.info("User password change attempt: %s", email)
        user = await self._get_active_or_404(email)
        errors.raise_for_errors(validation.validate_password_change(current_password, new_password))
        if not self.hasher.verify(current_password, user.hashed_password):
            logger.warning("Invalid current password for user: %s", email)
            raise errors.ValidationError(
                "Current password is incorrect",
                errors={"currentPassword": "Current password is incorrect"},
            )
        if current_password == new_password:
            raise errors.ValidationError(
                "New password must differ from current password",
                errors={"newPassword": "New password must differ from current password"},
            )
        try:
            user.hashed_password = self.hasher.hash(new_password)
        except ValueError as exc:
            raise errors.ValidationError(str(exc), errors={"newPassword": str(exc)}) from exc
        await self.db.commit()
        logger.info("User password changed successfully: %s", email)
        audit_event("user.password_changed", actor=user.email, user_id=user.id)

    async def update_profile_image(
        self,
        email: str,
        content: bytes,
        content_type: str | None,
        size_bytes: int | None = None,
        filename: str | None = None,
    ) -> User:
        logger.info("User profile image upload attempt: %s", email)
        user = await self._get_active_or_404(email)
        size = len(content) if size_bytes is None else size_bytes
        errors.raise_for_errors(validation.validate_profile_image(content_type, size))

        object_key = KeyGenerator.profile_image_key(filename, content_type)
        try:
            self.images.save(object_key, content)
        except OSError as exc:
            logger.exception("Error saving profile image for user %s", email)
            raise errors.ValidationError("Failed to save image") from exc

        previous = user.image
        user.image = object_key
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self._discard_image(object_key, email)
            raise
        await self.db.refresh(user)
        self._discard_image(previous, email)
        logger.info("User profile image updated: %s", email)
        return user

    async def delete_account(self, email: str) -> None:
        logger.info("User account delete attempt: %s", email)
        user = await self._get_active_or_404(email)
        image = user.image
        user.deleted = True
        user.deleted_at = datetime.now(timezone.utc)
        await self.db.commit()
        self._discard_image(image, email)
        logger.info("User account soft deleted: %s", email)
        audit_event("user.deleted", actor=user.email, user_id=user.id)
