import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.api import deps
from app.core.errors import register_exception_handlers
from app.core.permissions import PermissionCode
from conftest import make_user


@pytest.fixture
def guarded():
    """A bare app with one route per guard; ``caller`` decides who is logged in."""
    app = FastAPI()
    register_exception_handlers(app)
    caller: dict = {}

    @app.get("/me")
    async def me(user=Depends(deps.require_authenticated_user)):
        return {"email": user.email}

    @app.get("/review")
    async def review(user=Depends(deps.require_permission(PermissionCode.LOAN_REVIEW))):
        return {"email": user.email}

    @app.get("/apply")
    async def apply(user=Depends(deps.require_permission(PermissionCode.LOAN_APPLY))):
        return {"email": user.email}

    def login(user):
        caller["user"] = user

        async def current_user():
            return caller["user"]

        app.dependency_overrides[deps.get_current_user] = current_user

    client = TestClient(app)
    client.login = login
    return client


def test_missing_bearer_token_is_unauthenticated(guarded):
    resp = guarded.get("/me")

    assert resp.status_code == 401
    assert resp.json()["code"] == "AUTHENTICATION_ERROR"


def test_any_role_passes_the_authentication_guard(guarded):
    guarded.login(make_user(email="avery@example.com", role="AUDITOR"))

    resp = guarded.get("/me")

    assert resp.status_code == 200
    assert resp.json() == {"email": "avery@example.com"}


@pytest.mark.parametrize(
    ("role", "path", "expected"),
    [
        ("CUSTOMER", "/review", 403),
        ("AUDITOR", "/review", 403),
        ("MANAGER", "/review", 200),
        ("CUSTOMER", "/apply", 200),
        ("MANAGER", "/apply", 403),
    ],
)
def test_permission_guard_follows_role(guarded, role, path, expected):
    guarded.login(make_user(email=f"{role.lower()}@example.com", role=role))

    resp = guarded.get(path)

    assert resp.status_code == expected
    if expected == 403:
        assert resp.json()["code"] == "ACCESS_DENIED"
        assert resp.json()["message"].startswith("Missing permission: ")
