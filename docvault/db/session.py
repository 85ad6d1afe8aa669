"""
Database Session Management
Engine creation and session handling
"""

from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docvault.core.config import settings
from docvault.core.logging import get_logger
from docvault.db.base import Base

logger = get_logger(__name__)

# Engine
engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; SQLite gets foreign key enforcement"""
    if url.startswith("sqlite"):
        new_engine = create_async_engine(
            url,
            echo=echo,
            connect_args={"timeout": 30},
        )
        event.listen(new_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return new_engine

    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_POOL_SIZE * 2,
    )


async def create_tables(target: AsyncEngine) -> None:
    """Create all tables registered on Base"""
    # Register models with Base
    from docvault.db import models  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(url: Optional[str] = None, create_schema: Optional[bool] = None) -> None:
    """
    Initialize database engine and create tables

    Tables are created in development and test unless create_schema says
    otherwise; scripts/init_db.py forces it for other environments.
    """
    global engine, async_session_maker

    url = url or settings.DATABASE_URL
    logger.info(f"Connecting to database at {url.split('@')[-1]}")

    engine = build_engine(url, echo=settings.DATABASE_ECHO)
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    if create_schema is None:
        create_schema = settings.ENVIRONMENT in ("development", "test")
    if create_schema:
        await create_tables(engine)
        logger.info("Database tables created")


async def close_db() -> None:
    """Close database connections"""
    global engine, async_session_maker

    if engine:
        await engine.dispose()
        engine = None
        async_session_maker = None
        logger.info("Database connection closed")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session (dependency injection)"""
    if async_session_maker is None:
        raise RuntimeError("Database is not initialized")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping() -> bool:
    """Check database connectivity"""
    if async_session_maker is None:
        return False
    async with async_session_maker() as session:
        await session.execute(text("SELECT 1"))
    return True
