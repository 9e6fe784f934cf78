from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from app.core.config import settings

# Connections open lazily; pool_pre_ping drops connections Postgres closed
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    poolclass=AsyncAdaptedQueuePool,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

# Shared by request handlers and the auto-rebalance loop.  Rows stay
# readable after commit because assignment results are built post-commit.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db():
    """Yield one session per request; the services decide when to commit."""
    async with AsyncSessionLocal() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()
