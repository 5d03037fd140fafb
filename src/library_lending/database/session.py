"""
Database session management for the Library Lending MCP Server.

Every lending operation runs inside one session used as a unit of work:
repositories only flush, and ``session_scope`` commits when the operation
finishes or rolls everything back when it raises. That is what makes each
operation atomic from the caller's point of view.
"""

import logging
from collections.abc import Callable, Generator
from typing import TypeVar
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from .repository import RepositoryException
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseManager:
    """
    Owns the SQLite engine and hands out sessions for lending operations.

    The engine is created on first use with foreign keys switched on, so a
    book can never point at a member that does not exist.
    """

    def __init__(self, database_url: str | None = None):
        """
        Args:
            database_url: SQLite URL. If None, the configured database path is used.
        """
        if database_url is None:
            config = get_config()
            config.database_path.parent.mkdir(exist_ok=True, parents=True)
            database_url = config.get_database_url()
            logger.info("Using SQLite database at: %s", config.database_path)

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            self._engine = create_engine(
                self.database_url,
                # One shared connection; loans and queues are written from a single process
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                echo=False,
            )

            @event.listens_for(self._engine, "connect")
            def enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """Open a session that the caller must close."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for one lending operation.

        ```python
        with db_manager.session_scope() as session:
            service = lending_service_for(session)
            service.borrow_book("B1", "M1")
        # Committed here, or rolled back if the block raised
        ```
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Lending transaction committed")
        except Exception:
            logger.exception("Lending operation failed, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Create the members, books and book_reservations tables.

        Args:
            drop_existing: Drop every table first, discarding all loans and queues
        """
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping lending tables and all their data...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating lending tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Run a trivial query; False means the server should not start."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine. Called when the MCP server shuts down."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """Return the process-wide manager, creating it on first call."""
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Dispose of and forget the global database manager (useful for testing)."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """One unit of work on the global database manager."""
    with get_db_manager().session_scope() as session:
        yield session


def mcp_safe_flush(session: Session, operation: str) -> None:
    """
    Flush pending changes, converting database errors into repository errors.

    Changes stay inside the surrounding transaction until ``session_scope``
    commits them.

    Raises:
        RepositoryException: If the flush fails
    """
    try:
        session.flush()
    except SQLAlchemyError as e:
        logger.exception("Flush failed during %s", operation)
        raise RepositoryException(f"Database operation '{operation}' failed: {e!s}") from e


def mcp_safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query with consistent error handling.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Error message for the raised exception

    Raises:
        RepositoryException: If the query fails
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed")
        raise RepositoryException(f"{error_msg}: Database query failed") from e
