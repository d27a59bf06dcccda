"""Shared pytest fixtures for API and database integration tests."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from linktracker import models  # noqa: F401
from linktracker.config import get_settings
from linktracker.database import Base, get_db
from linktracker.dependencies import RequestContext, get_geo_resolver, get_request_context
from linktracker.geolocation import GeoLocationResolver
from linktracker.main import app


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def stub_geo_services(client: AsyncClient) -> Callable[[Callable[[httpx.Request], httpx.Response]], None]:
    """Route the resolver's outbound calls through a handler instead of the network."""

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> None:
        def override(ctx: RequestContext = Depends(get_request_context)) -> GeoLocationResolver:
            return GeoLocationResolver(ctx.settings, ctx.logger, transport=httpx.MockTransport(handler))

        app.dependency_overrides[get_geo_resolver] = override

    return install


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def make_link(client: AsyncClient) -> Callable[..., Awaitable[dict]]:
    """Create a link through the API and return its JSON representation."""

    async def create(name: str = "Blog", url: str = "https://example.com") -> dict:
        response = await client.post("/api/links", json={"name": name, "originalUrl": url})
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return create
