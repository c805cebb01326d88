"""Database engine and session management."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pix_gateway.config import settings
from pix_gateway.models.transaction import Base

# Background jobs open their own sessions through a factory of this type.
SessionFactory = async_sessionmaker[AsyncSession]

engine = create_async_engine(settings.database_url, echo=False)
async_session: SessionFactory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    """Create provider, owner, transaction, audit and dead-letter tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session
