"""Shared test fixtures."""

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pix_gateway.config import settings
from pix_gateway.engine import jobs
from pix_gateway.models.transaction import Base, Owner, Provider
from pix_gateway.providers.transport import OutboundTransport

MOCK_HEADER = "x-mock-response-name"


@pytest.fixture(autouse=True)
def no_simulation(monkeypatch):
    """Simulated webhooks are opted into per test."""
    monkeypatch.setattr(settings, "simulate_webhooks", False)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """A fresh database per test; every session from this factory shares it."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await jobs.shutdown()
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_session(db_session: AsyncSession):
    """Database session pre-loaded with both providers and their owners."""
    provider_a = Provider(
        name="SubadqA",
        base_url="https://subadq-a.test",
        config={"headers": {"X-Api-Key": "key-a"}, "mock_response_header": MOCK_HEADER},
        active=True,
    )
    provider_b = Provider(
        name="SubadqB",
        base_url="https://subadq-b.test/",
        config={"mock_response_header": MOCK_HEADER, "seller_id": "SELLER-1"},
        active=True,
    )
    db_session.add_all([provider_a, provider_b])
    await db_session.flush()

    db_session.add_all([
        Owner(id="owner-a", name="Usuário A", provider_id=provider_a.id),
        Owner(id="owner-b", name="Usuário C", provider_id=provider_b.id),
        Owner(id="owner-none", name="Sem subadquirente", provider_id=None),
    ])
    await db_session.commit()
    # Later lookups reload rows along with their eager relationships
    db_session.expunge_all()

    yield db_session


@pytest_asyncio.fixture
async def mock_transport():
    """
    Build an OutboundTransport whose requests are answered by ``handler``.

    Backoff delays are zeroed so retry tests run instantly.
    """
    clients: list[httpx.AsyncClient] = []

    def factory(handler, **kwargs) -> OutboundTransport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        kwargs.setdefault("base_delay", 0.0)
        kwargs.setdefault("max_delay", 0.0)
        return OutboundTransport(client=client, **kwargs)

    yield factory

    for client in clients:
        await client.aclose()


@pytest.fixture
def json_handler():
    """MockTransport handler factory: records requests, answers with a fixed JSON body."""

    def make(body, status_code: int = 200, calls: list = None):
        def handler(request: httpx.Request) -> httpx.Response:
            if calls is not None:
                calls.append(request)
            return httpx.Response(status_code, json=body)

        return handler

    return make
