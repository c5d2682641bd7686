from collections.abc import AsyncIterator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from provider_onboarding.adapters import ProviderRegistry
from provider_onboarding.database import get_db
from provider_onboarding.main import create_app
from provider_onboarding.models import Base
from tests._client import get_async_client
from tests.fakes import (
    FakeBankLink,
    FakeDocumentStore,
    FakeIdentityProvider,
    FakePaymentProcessor,
    RecordingNotifier,
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def session_maker() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Fresh in-memory SQLite database per test, schema built from model metadata."""

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    await engine.dispose()


@pytest.fixture
async def session(session_maker) -> AsyncIterator[AsyncSession]:
    async with session_maker() as s:
        yield s


@pytest.fixture
def providers() -> ProviderRegistry:
    return ProviderRegistry(
        store=FakeDocumentStore(),
        identity=FakeIdentityProvider(),
        bank=FakeBankLink(),
        payments=FakePaymentProcessor(),
        notifier=RecordingNotifier(),
    )


@pytest.fixture
def app(session_maker, providers):
    app = create_app(providers=providers)

    async def _get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as s:
            yield s

    app.dependency_overrides[get_db] = _get_db
    return app


@pytest.fixture
async def client(app):
    async with get_async_client(app) as c:
        yield c
