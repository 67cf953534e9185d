"""Database connection and session management."""
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bmcsync.config import settings

engine = create_async_engine(
    settings.database.url,
    echo=settings.database.echo,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Alias for scheduler use
async_session_factory = async_session


async def init_db() -> None:
    """Initialize database tables."""
    from bmcsync.db.models import Base

    # SQLite will not create the parent directory of its file
    url = make_url(settings.database.url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
