# tourist_tracking/infrastructure/database/session.py

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from tourist_tracking.config.settings import AppSettings, get_settings

Base = declarative_base()


def build_engine(settings: AppSettings) -> AsyncEngine:
    """Partition tables are created on demand, so the pool also serves DDL."""
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


engine = build_engine(get_settings())

# Read-only sessions for the tourist profile lookup
AsyncSessionLocal = build_session_factory(engine)
