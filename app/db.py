"""Async engine and session factory for the achievement ledger."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings

_ASYNC_PREFIX = "postgresql+asyncpg://"


def async_database_url(url: str) -> str:
    """Rewrite plain postgres URLs (as handed out by hosting providers) for asyncpg."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return _ASYNC_PREFIX + url[len(prefix):]
    return url


engine = create_async_engine(async_database_url(settings.database_url), pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncSession:  # type: ignore[misc]
    async with async_session() as session:
        yield session
