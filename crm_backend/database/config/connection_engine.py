"""
Connection Engine (SQLAlchemy, asyncio)

Purpose
-------
Centralizes database initialization for the application:
- Builds SQLAlchemy connection URLs from environment-backed settings.
- Creates the async Engine for the application database (chat history).
- Defines shared MetaData for table and schema objects.
- Exposes a Declarative Base class for ORM models.

Notes
-----
- Uses `URL.create(...)` to avoid hardcoding credentials.
- The CRM database URL is built here as well but its engine is created lazily
  by the query executor, the first time a question needs it.
- All ORM models must inherit from `declarativeBase`.
"""

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.schema import MetaData
from crm_backend.database.config.config import settings

connection_url = URL.create(
    drivername=settings.DB_DRIVER_NAME,   # e.g., "postgresql+asyncpg"
    username=settings.DB_USERNAME,
    password=settings.DB_PASSWORD,
    host=settings.DB_HOST,
    port=settings.DB_PORT,
    database=settings.DB_DATABASE_NAME,
)
"""Connection URL of the application database."""


def crm_connection_url() -> URL:
    """
    Build the connection URL of the CRM database.

    Returns
    -------
    URL
        SQLAlchemy URL using the `CRM_DB_*` settings.
    """
    return URL.create(
        drivername=settings.CRM_DB_DRIVER_NAME,
        username=settings.CRM_DB_USERNAME,
        password=settings.CRM_DB_PASSWORD,
        host=settings.CRM_DB_HOST,
        port=settings.CRM_DB_PORT,
        database=settings.CRM_DB_DATABASE_NAME,
    )


connection_engine = create_async_engine(connection_url, pool_pre_ping=True)
"""Async engine: core interface to the application database.
Responsible for managing connections, executing SQL, and pooling.
"""

session_factory = async_sessionmaker(
    connection_engine, class_=AsyncSession, expire_on_commit=False
)
"""Factory of `AsyncSession` objects bound to the application engine."""

metadata = MetaData()
"""
Metadata object: Stores schema-level information about tables, constraints, indexes, etc. Shared across all models.
"""

declarativeBase = declarative_base(metadata=metadata)
"""Declarative Base: Root class for ORM models.
All model classes should inherit from this to gain ORM features and automatic schema generation.
"""


async def create_tables() -> None:
    """Create the application tables if they do not exist yet."""
    # entities must be imported so their tables are registered on `metadata`
    from crm_backend.database import entities  # noqa: F401

    async with connection_engine.begin() as connection:
        await connection.run_sync(metadata.create_all)
