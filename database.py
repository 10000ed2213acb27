# Database connection setup
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

import config

Base = declarative_base()  # parent of every table model


def make_engine(url: str = None) -> AsyncEngine:
    url = url or config.DATABASE_URL
    kwargs = {}
    if url.startswith("sqlite"):
        # aiosqlite connections are tied to the loop that opened them
        kwargs["poolclass"] = NullPool
    return create_async_engine(url, **kwargs)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create the items table if it does not exist yet."""
    import models  # noqa: F401  registers the table on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
