import logging

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from core.config import settings

logger = logging.getLogger(__name__)

# Execution option asking SQLite to take the write lock at BEGIN
SQLITE_IMMEDIATE = "sqlite_immediate"


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    On SQLite, a connection carrying the SQLITE_IMMEDIATE execution option
    takes the database write lock when its transaction begins, so
    read-then-write sequences cannot interleave across connections. Other
    transactions begin deferred. PostgreSQL relies on row locks taken by
    the services.
    """
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": 30},
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):
            # Disable the driver's implicit BEGIN; emitted below instead.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _sqlite_begin(conn):
            if conn.get_execution_options().get(SQLITE_IMMEDIATE):
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                conn.exec_driver_sql("BEGIN")

        return engine

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
    )


db_engine = build_engine(settings.database_url, echo=settings.database_echo)

# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency returning the session factory for services that own their transactions."""
    return AsyncSessionLocal


async def init_db(engine: AsyncEngine = db_engine):
    """Create all tables."""
    # Import models so they register on Base.metadata
    import database.models  # noqa: F401

    logger.info("Initialising database schema")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping_db(engine: AsyncEngine = db_engine) -> bool:
    """Run a trivial query to check connectivity."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


# Function to close database connections
async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()
