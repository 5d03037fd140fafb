"""
Repository interfaces consumed by the lending service.

The lending service depends only on these two abstractions:

1. **BookRepository**: lookup by id, full scan, save and delete, plus the
   two explicit queries that stand in for a member's inverse collections
   (books they hold, books they have reserved)
2. **MemberRepository**: lookup by id, full scan, save and delete

Implementations take and return Pydantic models, so the service never sees
database rows. The SQLAlchemy implementations live in ``book_repository``
and ``member_repository``.
"""

from abc import ABC, abstractmethod

from ..models.book import Book
from ..models.member import Member


class RepositoryException(Exception):
    """Base exception for repository operations."""


class BookRepository(ABC):
    """Storage for books, their loans and their reservation queues."""

    @abstractmethod
    def find_by_id(self, book_id: str) -> Book | None:
        """Return the book with this id, or None."""

    @abstractmethod
    def find_all(self) -> list[Book]:
        """Return every book."""

    @abstractmethod
    def save(self, book: Book) -> Book:
        """Insert or update a book, including its loan and queue state."""

    @abstractmethod
    def delete(self, book: Book) -> None:
        """Delete a book together with its queue entries."""

    def find_by_borrower(self, member_id: str) -> list[Book]:
        """Books currently loaned to a member."""
        return [book for book in self.find_all() if book.loaned_to == member_id]

    def find_by_reservation(self, member_id: str) -> list[Book]:
        """Books whose reservation queue contains a member."""
        return [book for book in self.find_all() if member_id in book.reservation_queue]


class MemberRepository(ABC):
    """Storage for members."""

    @abstractmethod
    def find_by_id(self, member_id: str) -> Member | None:
        """Return the member with this id, or None."""

    @abstractmethod
    def find_all(self) -> list[Member]:
        """Return every member."""

    @abstractmethod
    def save(self, member: Member) -> Member:
        """Insert or update a member."""

    @abstractmethod
    def delete(self, member: Member) -> None:
        """Delete a member record."""
