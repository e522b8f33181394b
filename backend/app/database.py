from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from app.config import get_settings


def to_async_url(database_url: str) -> str:
    """Convert a sqlite:/// URL to its aiosqlite form."""
    if database_url.startswith("sqlite:///"):
        return database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return database_url


class Base(DeclarativeBase):
    pass


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(to_async_url(get_settings().database_url), echo=False)
    return _engine


def get_session_factory() -> async_sessionmaker:
    """
    Get the shared session factory.

    Repositories open one session per call, so concurrent reads issued with
    asyncio.gather never share a session.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(), class_=AsyncSession, expire_on_commit=False
        )
    return _session_factory


async def init_db(engine: Optional[AsyncEngine] = None):
    # Import models so their tables are registered on Base.metadata
    import app.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
