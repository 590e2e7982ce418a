"""Async database engine and sessions.

Request handlers get a session through ``get_db``; queue workers open one
``AsyncSessionLocal()`` per processed transaction.
"""

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings

# Bound parameters carry customer emails, phone numbers and ticket images,
# so SQL echo is only honoured in development.
async_engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo and settings.app_env.lower() == "development",
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    async_engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a session for one request."""
    async with AsyncSessionLocal() as session:
        yield session
