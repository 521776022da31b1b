from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from blog_api.config import settings
from blog_api.middleware import install_query_counter

# Tests swap in their own engine and override get_db.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

install_query_counter(engine)

# Rows stay usable after commit; response dicts are built from them.
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    Yield one session per request.

    The request is the transaction: it commits when the handler returns and
    rolls back on any exception, so a rejected mutation (not found, not the
    owner, conflict) never leaves partial writes behind.

    Routers declare it with ``scope="function"`` so the commit happens before
    the response is sent; a failed commit then reaches the client as a 500
    instead of following an already-delivered success.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
