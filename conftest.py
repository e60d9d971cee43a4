import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Local overrides for developers; CI relies on the defaults below
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

# Must be set before any settings-reading module is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_rebooked")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("COURIER_GUY_API_KEY", "")
os.environ.setdefault("FASTWAY_API_KEY", "")
os.environ.setdefault("SMTP_PASSWORD", "")

from libs.auth.models import AuthUser  # noqa: E402
from libs.common.config import get_settings  # noqa: E402
from libs.db.base import Base  # noqa: E402

# Import all models so metadata includes every table
from services.books_service import models as _book_models  # noqa: F401,E402
from services.communications_service import models as _comms_models  # noqa: F401,E402
from services.delivery_service import models as _delivery_models  # noqa: F401,E402
from services.orders_service import models as _order_models  # noqa: F401,E402
from services.payments_service import models as _payment_models  # noqa: F401,E402
from services.sellers_service import models as _seller_models  # noqa: F401,E402
from tests.stubs import FakePaystack  # noqa: E402

get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_paystack() -> FakePaystack:
    return FakePaystack()


@pytest.fixture
def buyer() -> AuthUser:
    return AuthUser(user_id="buyer-auth-1", email="buyer@test.com", role="authenticated")


@pytest.fixture
def seller() -> AuthUser:
    return AuthUser(
        user_id="seller-auth-1",
        email="seller@test.com",
        role="authenticated",
        user_metadata={"full_name": "Thandi Seller"},
    )


@pytest.fixture
def admin() -> AuthUser:
    return AuthUser(
        user_id="admin-auth-1",
        email="admin@test.com",
        role="authenticated",
        app_metadata={"role": "admin"},
    )


@pytest.fixture
def service_user() -> AuthUser:
    return AuthUser(user_id="service:cron", email="cron@test.com", role="service_role")
