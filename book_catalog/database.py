"""Database handle for catalog storage."""
import logging
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from book_catalog.models import Base
from book_catalog.results import ConstraintViolation, StorageFailure

logger = logging.getLogger(__name__)


class Database:
    """Async SQLAlchemy engine plus a session factory.

    Build one per process, call ``init_schema()`` before the first query
    and ``close()`` at shutdown (or use it as an async context manager).
    """

    def __init__(self, database_url: str, echo: bool = False):
        """
        Create the engine. No connection is opened until the first query.

        Args:
            database_url: SQLAlchemy async URL, e.g. ``sqlite+aiosqlite:///bookcat.db``
            echo: log every SQL statement
        """
        engine_kwargs = {"echo": echo}
        if database_url.endswith(":memory:"):
            # every pooled connection would otherwise get its own empty database
            engine_kwargs["poolclass"] = StaticPool
        self.database_url = database_url
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _sqlite_pragmas)

        logger.info(f"Database engine created for {self.engine.url.render_as_string(hide_password=True)}")

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(settings.database_url, echo=settings.sql_echo)

    async def init_schema(self):
        """Create tables if they don't exist."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize schema: {e}")
            raise StorageFailure("Could not initialize the catalog schema") from e
        logger.info("Database schema initialized successfully")

    @asynccontextmanager
    async def session(self):
        """Yield a session; storage errors roll back and surface as StorageFailure."""
        async with self.session_factory() as session:
            try:
                yield session
            except IntegrityError as e:
                await session.rollback()
                logger.error(f"Constraint violation: {e.orig}")
                raise ConstraintViolation(str(e.orig)) from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Storage operation failed: {e}")
                raise StorageFailure(str(e)) from e

    async def close(self):
        """Dispose of all pooled connections."""
        await self.engine.dispose()
        logger.info("Database engine disposed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _sqlite_pragmas(dbapi_connection, connection_record):
    # references are checked by the integrity guard, not by SQLite
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=OFF")
    cursor.close()
