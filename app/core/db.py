from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import get_settings
from app.models.base import Base

settings = get_settings()


def get_async_database_url(url: str) -> str:
    """Convert database URL to async-compatible format using psycopg driver."""
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    elif url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("sqlite://"):
        url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    if "channel_binding=" in url:
        import re
        url = re.sub(r'[&?]channel_binding=[^&]*', '', url)
        url = url.replace('?&', '?').rstrip('?')

    return url


database_url = get_async_database_url(settings.database_url)

engine_kwargs = {
    "future": True,
    "echo": settings.debug,
    "pool_pre_ping": True,  # Verify connections before using
}
if database_url.startswith("postgresql"):
    engine_kwargs.update(
        pool_recycle=3600,   # Recycle connections after 1 hour
        pool_timeout=10,     # Wait up to 10 seconds for a connection from pool
        max_overflow=10,     # Allow extra connections beyond pool_size
        connect_args={"connect_timeout": 10},
    )
elif database_url.startswith("sqlite"):
    # Seconds a writer waits on the database lock before failing
    engine_kwargs["connect_args"] = {"timeout": 30}

engine: AsyncEngine = create_async_engine(database_url, **engine_kwargs)


def configure_sqlite_engine(async_engine: AsyncEngine) -> None:
    """Take over transaction control from the sqlite driver.

    Every transaction starts with BEGIN IMMEDIATE so writers are serialized
    from their first statement. SQLite has no SELECT ... FOR UPDATE; this is
    what keeps stock read-then-decrement sequences from interleaving.
    """

    @event.listens_for(async_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(async_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


if database_url.startswith("sqlite"):
    configure_sqlite_engine(engine)

AsyncSessionFactory = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionFactory() as session:
        yield session


async def init_database() -> None:
    """Create all tables. In production use Alembic migrations instead."""
    import app.models  # noqa: F401 ensure models are registered

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def test_database_connection() -> bool:
    """Test database connection with timeout."""
    import asyncio
    import logging
    from sqlalchemy import text

    logger = logging.getLogger(__name__)

    async def _test_connection():
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            result.fetchone()

    try:
        await asyncio.wait_for(_test_connection(), timeout=10.0)
        return True
    except asyncio.TimeoutError:
        logger.error("[DB] Database connection test timed out after 10 seconds")
        return False
    except Exception as e:
        logger.error(f"[DB] Database connection test failed: {type(e).__name__}: {e}")
        return False
