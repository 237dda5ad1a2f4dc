from enum import Enum

from app.schemas.common import Role


class PermissionCode(str, Enum):
    # Loan origination
    LOAN_APPLY = "loan.apply"
    LOAN_VIEW_OWN = "loan.view_own"
    LOAN_UPDATE_OWN = "loan.update_own"
    LOAN_DELETE_OWN = "loan.delete_own"

    # Loan review / oversight
    LOAN_VIEW_ALL = "loan.view_all"
    LOAN_REVIEW = "loan.review"

    # Users
    USER_VIEW = "user.view"


ROLE_PERMISSIONS: dict[Role, frozenset[PermissionCode]] = {
    Role.CUSTOMER: frozenset(
        {
            PermissionCode.LOAN_APPLY,
            PermissionCode.LOAN_VIEW_OWN,
            PermissionCode.LOAN_UPDATE_OWN,
            PermissionCode.LOAN_DELETE_OWN,
        }
    ),
    Role.MANAGER: frozenset(
        {
            PermissionCode.LOAN_VIEW_OWN,
            PermissionCode.LOAN_VIEW_ALL,
            PermissionCode.LOAN_REVIEW,
            PermissionCode.USER_VIEW,
        }
    ),
    Role.AUDITOR: frozenset(
        {
            PermissionCode.LOAN_VIEW_OWN,
            PermissionCode.LOAN_VIEW_ALL,
            PermissionCode.USER_VIEW,
        }
    ),
}


def permissions_for_role(role: Role | str | None) -> frozenset[PermissionCode]:
    if role is None:
        return frozenset()
    try:
        resolved = role if isinstance(role, Role) else Role(str(role).upper())
    except ValueError:
        return frozenset()
    return ROLE_PERMISSIONS.get(resolved, frozenset())
