"""Unit tests for JWT auth helpers."""

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt
from libs.auth.dependencies import (
    get_current_user,
    require_admin,
    require_service_role,
    service_role_jwt,
)
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from starlette.requests import Request


def _request() -> Request:
    return Request({"type": "http", "headers": [], "state": {}})


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_valid_token_sets_request_user():
    token = jwt.encode(
        {"sub": "user-1", "email": "user@test.com", "role": "authenticated"},
        get_settings().SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )
    request = _request()

    user = await get_current_user(request, _bearer(token))

    assert user.user_id == "user-1"
    assert request.state.user is user


@pytest.mark.asyncio
@pytest.mark.unit
async def test_bad_signature_rejected():
    token = jwt.encode({"sub": "user-1"}, "wrong-secret", algorithm="HS256")

    with pytest.raises(HTTPException) as exc:
        await get_current_user(_request(), _bearer(token))

    assert exc.value.status_code == 401


@pytest.mark.asyncio
@pytest.mark.unit
async def test_service_role_jwt_round_trips():
    token = service_role_jwt("orders")

    user = await get_current_user(_request(), _bearer(token))

    assert user.role == "service_role"
    assert user.user_id == "service:orders"
    assert (await require_service_role(user)) is user
    assert (await require_admin(user)) is user


@pytest.mark.asyncio
@pytest.mark.unit
async def test_guards_reject_regular_users():
    user = AuthUser(user_id="user-2", email="user2@test.com")

    with pytest.raises(HTTPException):
        await require_admin(user)
    with pytest.raises(HTTPException):
        await require_service_role(user)


@pytest.mark.unit
def test_admin_via_app_metadata(admin):
    assert admin.is_admin
    assert admin.display_name == "admin"
