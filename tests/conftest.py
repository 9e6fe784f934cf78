from typing import TYPE_CHECKING, AsyncGenerator
from unittest.mock import AsyncMock

if TYPE_CHECKING:
    from app.core.cache import CacheService

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.main import app


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Yield an ``httpx.AsyncClient`` wired to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Return an ``AsyncMock`` that behaves like ``redis.asyncio.Redis``."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock()
    redis.setex = AsyncMock()
    redis.delete = AsyncMock()
    redis.ping = AsyncMock()
    return redis


@pytest.fixture
def mock_cache(mock_redis) -> "CacheService":
    """Return a ``CacheService`` backed by the mock Redis client."""
    from app.core.cache import CacheService

    return CacheService(redis_client=mock_redis)
