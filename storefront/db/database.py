"""Database connection and session management."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from storefront.core.config import settings
from storefront.db.models import Base

logger = logging.getLogger(__name__)


def async_database_url(url: str) -> str:
    """Select the async driver for plain postgresql:// and sqlite:// URLs."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


database_url = async_database_url(settings.database_url)
is_sqlite = database_url.startswith("sqlite")

engine = create_async_engine(
    database_url,
    echo=settings.database_echo,
    pool_pre_ping=not is_sqlite,
    connect_args={"check_same_thread": False} if is_sqlite else {},
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Create missing tables. Schema changes go through Alembic."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"[DB] Tables ready on {engine.url.render_as_string(hide_password=True)}")


async def dispose_db() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()


async def get_db() -> AsyncSession:
    """Dependency for getting database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
