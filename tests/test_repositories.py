"""
Tests for the SQL repositories.

Covers the mapping between the Book model and the books and
book_reservations tables, the inverse queries that replace member-side
collections, and error conversion to RepositoryException.
"""

from datetime import date

import pytest

from library_lending.database import (
    BookRecord,
    BookRepository,
    BookReservationRecord,
    RepositoryException,
    SqlBookRepository,
    SqlMemberRepository,
)
from library_lending.models import Book, Member


class InMemoryBookRepository(BookRepository):
    """Dictionary-backed repository relying on the interface's default queries."""

    def __init__(self, books: list[Book]):
        self.books = {book.id: book for book in books}

    def find_by_id(self, book_id):
        return self.books.get(book_id)

    def find_all(self):
        return list(self.books.values())

    def save(self, book):
        self.books[book.id] = book
        return book

    def delete(self, book):
        self.books.pop(book.id, None)


class TestBookRepository:
    def test_save_and_find(self, book_repo: SqlBookRepository):
        book_repo.save(Book(id="B1", title="The Great Gatsby"))

        found = book_repo.find_by_id("B1")

        assert found == Book(id="B1", title="The Great Gatsby")
        assert book_repo.find_by_id("B9") is None

    def test_find_all_is_ordered_by_id(self, book_repo: SqlBookRepository):
        for book_id in ["B3", "B1", "B2"]:
            book_repo.save(Book(id=book_id, title=f"Title {book_id}"))

        assert [book.id for book in book_repo.find_all()] == ["B1", "B2", "B3"]

    def test_loan_round_trips(self, library, book_repo: SqlBookRepository):
        book = book_repo.find_by_id("B1")
        book.lend_to("M1", date(2024, 1, 29))
        book_repo.save(book)

        found = book_repo.find_by_id("B1")
        assert found.loaned_to == "M1"
        assert found.due_date == date(2024, 1, 29)

    def test_queue_order_is_preserved(self, library, book_repo: SqlBookRepository, test_session):
        book = book_repo.find_by_id("B1")
        for member_id in ["M3", "M1", "M2"]:
            book.enqueue(member_id)
        book_repo.save(book)
        test_session.commit()
        test_session.expire_all()

        assert book_repo.find_by_id("B1").reservation_queue == ["M3", "M1", "M2"]

    def test_queue_rewrite_reuses_rows(self, library, book_repo: SqlBookRepository, test_session):
        book = book_repo.find_by_id("B1")
        for member_id in ["M1", "M2", "M3"]:
            book.enqueue(member_id)
        book_repo.save(book)

        book.dequeue("M1")
        book.enqueue("M4")
        book_repo.save(book)
        test_session.commit()
        test_session.expire_all()

        rows = (
            test_session.query(BookReservationRecord)
            .filter_by(book_id="B1")
            .order_by(BookReservationRecord.position)
            .all()
        )
        assert [(r.member_id, r.position) for r in rows] == [("M2", 0), ("M3", 1), ("M4", 2)]

    def test_find_by_borrower(self, library, book_repo: SqlBookRepository):
        for book_id in ["B1", "B3"]:
            book = book_repo.find_by_id(book_id)
            book.lend_to("M1", date(2024, 1, 29))
            book_repo.save(book)

        assert [book.id for book in book_repo.find_by_borrower("M1")] == ["B1", "B3"]
        assert book_repo.find_by_borrower("M2") == []

    def test_find_by_reservation(self, library, book_repo: SqlBookRepository):
        for book_id in ["B2", "B3"]:
            book = book_repo.find_by_id(book_id)
            book.enqueue("M4")
            book_repo.save(book)

        assert [book.id for book in book_repo.find_by_reservation("M4")] == ["B2", "B3"]
        assert book_repo.find_by_reservation("M1") == []

    def test_delete_removes_queue_rows(self, library, book_repo: SqlBookRepository, test_session):
        book = book_repo.find_by_id("B1")
        book.enqueue("M2")
        book_repo.save(book)

        book_repo.delete(book)

        assert book_repo.find_by_id("B1") is None
        assert test_session.query(BookReservationRecord).count() == 0
        assert test_session.query(BookRecord).count() == 6

    def test_loan_to_unknown_member_is_rejected(self, book_repo: SqlBookRepository):
        book = Book(id="B1", title="Title", loaned_to="M404", due_date=date(2024, 1, 29))

        with pytest.raises(RepositoryException, match="save book"):
            book_repo.save(book)


class TestMemberRepository:
    def test_save_find_update(self, member_repo: SqlMemberRepository):
        member_repo.save(Member(id="M1", name="Ada"))
        member_repo.save(Member(id="M1", name="Ada Lovelace"))

        assert member_repo.find_by_id("M1") == Member(id="M1", name="Ada Lovelace")
        assert member_repo.find_by_id("M9") is None

    def test_find_all(self, library, member_repo: SqlMemberRepository):
        assert [m.id for m in member_repo.find_all()] == ["M1", "M2", "M3", "M4", "M5", "M6"]

    def test_delete(self, library, member_repo: SqlMemberRepository):
        member_repo.delete(Member(id="M4", name="Edsger Dijkstra"))

        assert member_repo.find_by_id("M4") is None

    def test_delete_member_holding_book_is_rejected(
        self, library, book_repo: SqlBookRepository, member_repo: SqlMemberRepository
    ):
        book = book_repo.find_by_id("B1")
        book.lend_to("M1", date(2024, 1, 29))
        book_repo.save(book)

        with pytest.raises(RepositoryException, match="delete member"):
            member_repo.delete(member_repo.find_by_id("M1"))


class TestDefaultInverseQueries:
    def test_defaults_scan_all_books(self):
        repo = InMemoryBookRepository(
            [
                Book(id="B1", title="One", loaned_to="M1", due_date=date(2024, 1, 29)),
                Book(id="B2", title="Two", reservation_queue=["M1", "M2"]),
                Book(id="B3", title="Three", loaned_to="M2", due_date=date(2024, 1, 29)),
            ]
        )

        assert [b.id for b in repo.find_by_borrower("M1")] == ["B1"]
        assert [b.id for b in repo.find_by_reservation("M2")] == ["B2"]
        assert repo.find_by_reservation("M3") == []
