from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import context
from app.core.errors import AccessDeniedError, AuthenticationError
from app.core.permissions import PermissionCode
from app.core.security import PasswordHasher, TokenIssuer
from app.db.session import get_db
from app.models import User
from app.services import authz
from app.services.loans import LoanService
from app.services.storage.service import get_image_store
from app.services.users import UserAccountService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/users/login", auto_error=False)


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


def get_loan_service(db: AsyncSession = Depends(get_db_session)) -> LoanService:
    return LoanService(db)


def get_user_service(db: AsyncSession = Depends(get_db_session)) -> UserAccountService:
    return UserAccountService(
        db,
        hasher=PasswordHasher(),
        tokens=TokenIssuer(),
        images=get_image_store(),
    )


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    users: UserAccountService = Depends(get_user_service),
) -> User:
    if not token:
        raise AuthenticationError("Authentication required")
    try:
        payload = users.tokens.decode(token, expected_type="access")
    except ValueError as exc:
        raise AuthenticationError("Invalid or expired token") from exc
    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Invalid token")

    user = await users.resolve_by_username(subject)
    if user.deleted:
        raise AuthenticationError("Account has been deleted")
    context.set_user_email(user.email)
    return user


async def require_authenticated_user(current_user: User = Depends(get_current_user)) -> User:
    """Simple guard to require an authenticated user (no permission checks)."""
    return current_user


def require_permission(permission_code: PermissionCode):
    async def dependency(current_user: User = Depends(require_authenticated_user)) -> User:
        if not await authz.check_permission(current_user, permission_code):
            raise AccessDeniedError(f"Missing permission: {permission_code.value}")
        return current_user

    return dependency
