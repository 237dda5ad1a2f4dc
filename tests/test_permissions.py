import pytest

from app.core.permissions import PermissionCode, permissions_for_role
from app.services import authz
from conftest import make_user


def test_customer_permissions():
    perms = permissions_for_role("CUSTOMER")
    assert PermissionCode.LOAN_APPLY in perms
    assert PermissionCode.LOAN_REVIEW not in perms
    assert PermissionCode.LOAN_VIEW_ALL not in perms


def test_manager_and_auditor_split_review():
    assert PermissionCode.LOAN_REVIEW in permissions_for_role("MANAGER")
    assert PermissionCode.LOAN_REVIEW not in permissions_for_role("AUDITOR")
    assert PermissionCode.LOAN_VIEW_ALL in permissions_for_role("auditor")


def test_unknown_role_has_no_permissions():
    assert permissions_for_role("ADMIN") == frozenset()
    assert permissions_for_role(None) == frozenset()


@pytest.mark.asyncio
async def test_check_permission_by_role():
    manager = make_user(email="m@example.com", role="MANAGER")
    assert await authz.check_permission(manager, PermissionCode.LOAN_REVIEW)
    assert await authz.check_permission(manager, "loan.view_all")
    assert not await authz.check_permission(manager, "loan.unknown")


@pytest.mark.asyncio
async def test_deleted_user_has_no_permissions():
    manager = make_user(email="m@example.com", role="MANAGER", deleted=True)
    assert not await authz.check_permission(manager, PermissionCode.LOAN_REVIEW)


@pytest.mark.asyncio
async def test_can_view_loan():
    owner = make_user(email="o@example.com")
    other = make_user(email="x@example.com")
    auditor = make_user(email="a@example.com", role="AUDITOR")
    assert await authz.can_view_loan(owner, owner.id)
    assert not await authz.can_view_loan(other, owner.id)
    assert await authz.can_view_loan(auditor, owner.id)


@pytest.mark.asyncio
async def test_can_view_own_loan_needs_view_own_permission():
    roleless = make_user(email="r@example.com", role="GUEST")
    assert not await authz.can_view_loan(roleless, roleless.id)
