from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from forum.config import settings
from forum.middleware import install_query_counter

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


@asynccontextmanager
async def session_scope(factory: async_sessionmaker | None = None):
    """
    Open a session that commits on clean exit and rolls back on error.

    Used outside the request cycle (background tasks, scripts).  *factory*
    defaults to the production session factory and is resolved at call
    time so tests can swap ``async_session``.
    """
    async with (factory or async_session)() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db():
    """Request-scoped session; the router layer owns the transaction."""
    async with session_scope() as session:
        yield session
