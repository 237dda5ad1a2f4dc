import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import Response

from app.api import auth_utils, deps
from app.core import errors
from app.core.limiter import limiter
from app.core.permissions import PermissionCode
from app.core.settings import settings
from app.models import User
from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    SignupRequest,
)
from app.schemas.users import UserOut
from app.services import validation
from app.services.users import AuthResult, UserAccountService, normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        user=UserOut.model_validate(result.user),
    )


@router.post("/signup", response_model=AuthResponse)
async def signup(
    payload: SignupRequest,
    users: UserAccountService = Depends(deps.get_user_service),
) -> AuthResponse:
    errors.raise_for_errors(
        validation.validate_registration(
            payload.name, payload.email, payload.password, payload.phone, payload.income, payload.role
        )
    )
    result = await users.register(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        income=payload.income,
        role=payload.role,
    )
    return _auth_response(result)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(lambda: f"{settings.rate_limit_per_minute}/minute")
async def login(
    credentials: LoginRequest,
    request: Request,
    users: UserAccountService = Depends(deps.get_user_service),
) -> AuthResponse:
    errors.raise_for_errors(validation.validate_login(credentials.email, credentials.password))
    email = normalize_email(credentials.email)
    client_ip = request.client.host if request.client else "unknown"
    await auth_utils.enforce_login_limits(client_ip, email)
    try:
        result = await users.login(email, credentials.password)
    except errors.AuthenticationError:
        await auth_utils.record_login_attempt(email, success=False)
        raise
    await auth_utils.record_login_attempt(email, success=True)
    return _auth_response(result)


@router.post("/refresh", response_model=AuthResponse)
async def refresh_tokens(
    payload: RefreshRequest,
    users: UserAccountService = Depends(deps.get_user_service),
) -> AuthResponse:
    return _auth_response(await users.refresh(payload.refresh_token))


@router.post("/logout")
async def logout(current_user: User = Depends(deps.require_authenticated_user)) -> dict:
    # Tokens are stateless; clients drop them.
    logger.info("User logged out: %s", current_user.email)
    return {"message": "Logged out successfully"}


@router.get("/profile", response_model=UserOut)
async def read_profile(
    current_user: User = Depends(deps.require_authenticated_user),
    users: UserAccountService = Depends(deps.get_user_service),
) -> UserOut:
    return UserOut.model_validate(await users.get_profile(current_user.email))


@router.delete("/profile", status_code=status.HTTP_204_NO_CONTENT)
async def delete_profile(
    current_user: User = Depends(deps.require_authenticated_user),
    users: UserAccountService = Depends(deps.get_user_service),
) -> Response:
    await users.delete_account(current_user.email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(deps.require_authenticated_user),
    users: UserAccountService = Depends(deps.get_user_service),
) -> dict:
    errors.raise_for_errors(
        validation.validate_password_change(payload.current_password, payload.new_password)
    )
    await users.change_password(current_user.email, payload.current_password, payload.new_password)
    return {"message": "Password changed successfully"}


@router.patch("/image", response_model=UserOut)
async def update_profile_image(
    file: UploadFile | None = File(default=None),
    current_user: User = Depends(deps.require_authenticated_user),
    users: UserAccountService = Depends(deps.get_user_service),
) -> UserOut:
    if file is None:
        raise errors.ValidationError("No file uploaded", errors={"file": "No file uploaded"})
    # One byte past the limit is enough to reject oversize uploads.
    content = await file.read(settings.profile_image_max_bytes + 1)
    user = await users.update_profile_image(
        current_user.email,
        content,
        file.content_type,
        size_bytes=len(content),
        filename=file.filename,
    )
    return UserOut.model_validate(user)


@router.get("/{user_id}", response_model=UserOut)
async def read_user(
    user_id: int,
    _: User = Depends(deps.require_permission(PermissionCode.USER_VIEW)),
    users: UserAccountService = Depends(deps.get_user_service),
) -> UserOut:
    return UserOut.model_validate(await users.get_user(user_id))
