"""
Per-service HTTP clients shared by the integration and contract suites.

Each client talks to one service app in-process. The app's DB dependency is
bound to the test session, Paystack is replaced by ``fake_paystack`` and the
authenticated user is whoever ``acting_as`` currently points at (the buyer
by default). Switch users mid-test with ``acting_as.set(seller)``.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.payments_service.paystack_client import (
    get_optional_paystack_client,
    get_paystack_client,
)


class ActingUser:
    def __init__(self, user: AuthUser):
        self.user = user

    def set(self, user: AuthUser) -> None:
        self.user = user


@pytest.fixture
def acting_as(buyer) -> ActingUser:
    return ActingUser(buyer)


async def _client_for(app, db_session, acting_as, fake_paystack):
    async def _db():
        yield db_session

    app.dependency_overrides[get_async_db] = _db
    app.dependency_overrides[get_current_user] = lambda: acting_as.user
    app.dependency_overrides[get_paystack_client] = lambda: fake_paystack
    app.dependency_overrides[get_optional_paystack_client] = lambda: fake_paystack

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def payments_client(
    db_session, acting_as, fake_paystack
) -> AsyncGenerator[AsyncClient, None]:
    from services.payments_service.app.main import app

    async for client in _client_for(app, db_session, acting_as, fake_paystack):
        yield client


@pytest_asyncio.fixture
async def orders_client(
    db_session, acting_as, fake_paystack
) -> AsyncGenerator[AsyncClient, None]:
    from services.orders_service.app.main import app

    async for client in _client_for(app, db_session, acting_as, fake_paystack):
        yield client


@pytest_asyncio.fixture
async def sellers_client(
    db_session, acting_as, fake_paystack
) -> AsyncGenerator[AsyncClient, None]:
    from services.sellers_service.app.main import app

    async for client in _client_for(app, db_session, acting_as, fake_paystack):
        yield client


@pytest_asyncio.fixture
async def books_client(
    db_session, acting_as, fake_paystack
) -> AsyncGenerator[AsyncClient, None]:
    from services.books_service.app.main import app

    async for client in _client_for(app, db_session, acting_as, fake_paystack):
        yield client


@pytest_asyncio.fixture
async def delivery_client(
    db_session, acting_as, fake_paystack
) -> AsyncGenerator[AsyncClient, None]:
    from services.delivery_service.app.main import app

    async for client in _client_for(app, db_session, acting_as, fake_paystack):
        yield client


@pytest_asyncio.fixture
async def communications_client(
    db_session, acting_as, fake_paystack
) -> AsyncGenerator[AsyncClient, None]:
    from services.communications_service.app.main import app

    async for client in _client_for(app, db_session, acting_as, fake_paystack):
        yield client
