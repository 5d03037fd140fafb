"""
Database package for the Library Lending MCP Server.

This package provides:
- Repository interfaces the lending service depends on (repository.py)
- SQLAlchemy schema definitions (schema.py)
- SQLAlchemy repository implementations
- Session management with one transaction per operation (session.py)
"""

from .book_repository import SqlBookRepository
from .member_repository import SqlMemberRepository
from .repository import BookRepository, MemberRepository, RepositoryException
from .schema import Base
from .schema import Book as BookRecord
from .schema import BookReservation as BookReservationRecord
from .schema import Member as MemberRecord
from .session import (
    DatabaseManager,
    get_db_manager,
    mcp_safe_flush,
    mcp_safe_query,
    reset_db_manager,
    session_scope,
)

__all__ = [
    "Base",
    "BookRecord",
    "BookRepository",
    "BookReservationRecord",
    "DatabaseManager",
    "MemberRecord",
    "MemberRepository",
    "RepositoryException",
    "SqlBookRepository",
    "SqlMemberRepository",
    "get_db_manager",
    "mcp_safe_flush",
    "mcp_safe_query",
    "reset_db_manager",
    "session_scope",
]
