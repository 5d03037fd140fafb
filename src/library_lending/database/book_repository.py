"""
Book repository implementation for the Library Lending MCP Server.

Maps the ``books`` and ``book_reservations`` tables to the Book model:

1. **Loan relation**: ``loaned_to_member_id`` and ``due_date`` columns
2. **Reservation queue**: ordered ``book_reservations`` rows, rebuilt from
   the model's list on save
3. **Inverse queries**: books held by a member and books a member has
   reserved, answered with SQL instead of relationship collections

Writes are flushed, never committed; the caller's ``session_scope`` owns the
transaction.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..database.schema import Book as BookDB
from ..database.schema import BookReservation as BookReservationDB
from ..database.session import mcp_safe_flush, mcp_safe_query
from ..models.book import Book as BookModel
from .repository import BookRepository

logger = logging.getLogger(__name__)


class SqlBookRepository(BookRepository):
    """
    SQLAlchemy-backed book repository.

    All methods return Pydantic models; database rows never leave this class.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    def _to_model(self, db_obj: BookDB) -> BookModel:
        """Convert a database row and its queue rows to a Book model."""
        return BookModel(
            id=db_obj.id,
            title=db_obj.title,
            loaned_to=db_obj.loaned_to_member_id,
            due_date=db_obj.due_date,
            reservation_queue=[r.member_id for r in db_obj.reservations],
        )

    def _get_row(self, book_id: str) -> BookDB | None:
        query = (
            select(BookDB).where(BookDB.id == book_id).options(selectinload(BookDB.reservations))
        )
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get book by ID",
        )

    def _select_many(self, query, error_msg: str) -> list[BookModel]:
        query = query.options(selectinload(BookDB.reservations)).order_by(BookDB.id)
        results = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            error_msg,
        )
        return [self._to_model(row) for row in results]

    def find_by_id(self, book_id: str) -> BookModel | None:
        db_obj = self._get_row(book_id)
        if db_obj is None:
            return None
        return self._to_model(db_obj)

    def find_all(self) -> list[BookModel]:
        return self._select_many(select(BookDB), "Failed to get all books")

    def find_by_borrower(self, member_id: str) -> list[BookModel]:
        query = select(BookDB).where(BookDB.loaned_to_member_id == member_id)
        return self._select_many(query, "Failed to get books loaned to member")

    def find_by_reservation(self, member_id: str) -> list[BookModel]:
        query = (
            select(BookDB)
            .join(BookReservationDB, BookReservationDB.book_id == BookDB.id)
            .where(BookReservationDB.member_id == member_id)
        )
        return self._select_many(query, "Failed to get books reserved by member")

    def save(self, book: BookModel) -> BookModel:
        """
        Insert or update a book.

        Queue rows are reused per member so that re-saving a queue only
        rewrites positions, removes departed members and adds new ones.

        Raises:
            RepositoryException: On database errors
        """
        db_obj = self._get_row(book.id)
        if db_obj is None:
            db_obj = BookDB(id=book.id)
            self.session.add(db_obj)

        db_obj.title = book.title
        db_obj.loaned_to_member_id = book.loaned_to
        db_obj.due_date = book.due_date

        existing = {r.member_id: r for r in db_obj.reservations}
        queue = []
        for position, member_id in enumerate(book.reservation_queue):
            row = existing.get(member_id)
            if row is None:
                row = BookReservationDB(member_id=member_id, position=position)
            else:
                row.position = position
            queue.append(row)
        db_obj.reservations = queue

        mcp_safe_flush(self.session, "save book")
        logger.debug("Saved book %s (loaned_to=%s, queue=%s)", book.id, book.loaned_to, book.reservation_queue)
        return book

    def delete(self, book: BookModel) -> None:
        """
        Delete a book; its reservation rows go with it.

        Raises:
            RepositoryException: On database errors
        """
        db_obj = self._get_row(book.id)
        if db_obj is None:
            return

        self.session.delete(db_obj)
        mcp_safe_flush(self.session, "delete book")
        logger.debug("Deleted book %s", book.id)
