from app.core.permissions import PermissionCode, permissions_for_role
from app.models.user import User


def _normalize(permission_code: PermissionCode | str) -> PermissionCode | None:
    if isinstance(permission_code, PermissionCode):
        return permission_code
    try:
        return PermissionCode(permission_code)
    except ValueError:
        return None


async def check_permission(user: User, permission_code: PermissionCode | str) -> bool:
    """Role-bucket permission check; soft-deleted accounts hold no permissions."""
    if user is None or user.deleted:
        return False
    code = _normalize(permission_code)
    if code is None:
        return False
    return code in permissions_for_role(user.role)


async def can_view_loan(user: User, owner_id: int | None) -> bool:
    if await check_permission(user, PermissionCode.LOAN_VIEW_ALL):
        return True
    if owner_id is None or owner_id != user.id:
        return False
    return await check_permission(user, PermissionCode.LOAN_VIEW_OWN)
