"""Test configuration and fixtures for the Library Lending MCP Server.

1. Isolated databases - each test gets a fresh SQLite file
2. Pinned clock - the lending service sees a fixed "today"
3. Default lending policy - five books per member, fourteen-day loans
4. Tool isolation - handlers run against the test session
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

from library_lending.config import ServerConfig, reset_config
from library_lending.database.book_repository import SqlBookRepository
from library_lending.database.member_repository import SqlMemberRepository
from library_lending.database.session import DatabaseManager, reset_db_manager
from library_lending.models import Book, Member
from library_lending.services.lending_service import LendingService

TODAY = date(2024, 1, 15)


@pytest.fixture(autouse=True)
def isolate_globals() -> Generator[None, None, None]:
    """Never leak the configuration or database singletons between tests."""
    reset_config()
    reset_db_manager()
    yield
    reset_config()
    reset_db_manager()


# === Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path for each test."""
    return tmp_path / "test_library.db"


@pytest.fixture
def db_manager(test_db_path: Path) -> Generator[DatabaseManager, None, None]:
    """A database manager over a fresh schema."""
    manager = DatabaseManager(f"sqlite:///{test_db_path}")
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def test_session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    """Provide a SQLAlchemy session for repository and service tests."""
    session = db_manager.create_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def book_repo(test_session: Session) -> SqlBookRepository:
    return SqlBookRepository(test_session)


@pytest.fixture
def member_repo(test_session: Session) -> SqlMemberRepository:
    return SqlMemberRepository(test_session)


# === Configuration Fixtures ===


@pytest.fixture
def test_config(test_db_path: Path) -> ServerConfig:
    """Configuration used by the service fixtures, pointing at the test database."""
    return ServerConfig(
        server_name="test-library-lending",
        server_version="0.0.1-test",
        database_path=test_db_path,
        max_loans=5,
        loan_period_days=14,
        debug=True,
        log_level="DEBUG",
    )


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide an environment without LIBRARY_LENDING_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_LENDING_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# === Service Fixtures ===


@pytest.fixture
def service(
    book_repo: SqlBookRepository,
    member_repo: SqlMemberRepository,
    test_config: ServerConfig,
) -> LendingService:
    """Lending service with a pinned clock."""
    return LendingService(book_repo, member_repo, config=test_config, today=lambda: TODAY)


@pytest.fixture
def library(book_repo: SqlBookRepository, member_repo: SqlMemberRepository) -> None:
    """Seed books B1-B7 and members M1-M6, nothing on loan."""
    for book_id, title in [
        ("B1", "The Great Gatsby"),
        ("B2", "To Kill a Mockingbird"),
        ("B3", "Great Expectations"),
        ("B4", "Moby Dick"),
        ("B5", "Middlemarch"),
        ("B6", "Bleak House"),
        ("B7", "Dracula"),
    ]:
        book_repo.save(Book(id=book_id, title=title))
    for member_id, name in [
        ("M1", "Ada Lovelace"),
        ("M2", "Grace Hopper"),
        ("M3", "Alan Turing"),
        ("M4", "Edsger Dijkstra"),
        ("M5", "Barbara Liskov"),
        ("M6", "Donald Knuth"),
    ]:
        member_repo.save(Member(id=member_id, name=name))


# === Tool Fixtures ===


@pytest.fixture
def mock_session_scope(test_session: Session, test_config: ServerConfig, monkeypatch) -> Session:
    """Run tool handlers against the test session and test policy.

    The replacement scope commits on success and rolls back on error, like
    the real one, so tests observe the same unit-of-work behavior.
    """

    @contextmanager
    def _mock_session_scope():
        try:
            yield test_session
            test_session.commit()
        except Exception:
            test_session.rollback()
            raise

    def _service_for(session: Session, config: ServerConfig | None = None) -> LendingService:
        return LendingService(
            SqlBookRepository(session),
            SqlMemberRepository(session),
            config=config or test_config,
            today=lambda: TODAY,
        )

    for module in ("circulation", "catalog", "admin"):
        monkeypatch.setattr(f"library_lending.tools.{module}.session_scope", _mock_session_scope)
        monkeypatch.setattr(f"library_lending.tools.{module}.lending_service_for", _service_for)

    return test_session
