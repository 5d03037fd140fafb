"""
Lending service for the Library Lending MCP Server.

This is the lending and reservation state machine. It decides:

1. **Who may borrow**: a member is eligible while they hold fewer books
   than the borrow limit
2. **Where a returned book goes**: to the first eligible member in its
   reservation queue, skipping (but keeping) ineligible entries
3. **How deletions cascade**: deleting a member hands their books on and
   removes them from every queue; deleting a book takes its queue with it

Every operation reads the entities it needs through the two repository
interfaces, mutates them in memory and saves only what changed. Expected
failures come back as typed results with a reason code. The service never
commits; the caller wraps each operation in one unit of work.
"""

import logging
from collections.abc import Callable
from datetime import date, timedelta

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..config import ServerConfig, get_config
from ..database.book_repository import SqlBookRepository
from ..database.member_repository import SqlMemberRepository
from ..database.repository import BookRepository, MemberRepository
from ..models.book import Book
from ..models.member import Member
from ..models.results import (
    FailureReason,
    LendingResult,
    MemberSummary,
    ReservationPosition,
    ReturnResult,
)

logger = logging.getLogger(__name__)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


class LendingService:
    """
    Borrowing, returning, reservations and the administrative operations
    that must keep loan and queue state consistent.
    """

    def __init__(
        self,
        book_repository: BookRepository,
        member_repository: MemberRepository,
        config: ServerConfig | None = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize the service.

        Args:
            book_repository: Storage for books, loans and queues
            member_repository: Storage for members
            config: Lending policy; defaults to the global configuration
            today: Clock used for due dates
        """
        config = config or get_config()
        self.book_repository = book_repository
        self.member_repository = member_repository
        self.max_loans = config.max_loans
        self.loan_period = timedelta(days=config.loan_period_days)
        self.today = today

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def can_member_borrow(self, member_id: str) -> bool:
        """Eligibility by id. Unknown members are never eligible."""
        return self.can_borrow(self.member_repository.find_by_id(member_id))

    def can_borrow(self, member: Member | None) -> bool:
        """Eligibility for an already resolved member. None is never eligible."""
        if member is None:
            return False
        return len(self.book_repository.find_by_borrower(member.id)) < self.max_loans

    def _default_due_date(self) -> date:
        return self.today() + self.loan_period

    def _reject(self, operation: str, reason: FailureReason, **context: object) -> LendingResult:
        logger.debug("%s rejected: %s %s", operation, reason.value, context)
        return LendingResult.failure(reason)

    def _pass_to_next_in_queue(self, book: Book, exclude: str | None = None) -> str | None:
        """
        Hand the book to the first eligible queued member, or release it.

        Ineligible entries stay where they are. The promoted member leaves
        the queue and inherits the current due date until they act on the
        loan themselves.
        """
        next_member_id = next(
            (
                member_id
                for member_id in book.reservation_queue
                if member_id != exclude and self.can_member_borrow(member_id)
            ),
            None,
        )

        if next_member_id is None:
            book.release()
            return None

        book.dequeue(next_member_id)
        book.lend_to(next_member_id, book.due_date or self._default_due_date())
        return next_member_id

    # ------------------------------------------------------------------
    # Circulation
    # ------------------------------------------------------------------

    def borrow_book(self, book_id: str, member_id: str) -> LendingResult:
        """
        Lend a book to a member for the default loan period.

        Checks run in a fixed order: book exists, member exists, member is
        under the borrow limit, book is available. A member at the limit gets
        BORROW_LIMIT even when the book is also already on loan.
        """
        book = self.book_repository.find_by_id(book_id)
        member = self.member_repository.find_by_id(member_id)

        if book is None:
            return self._reject("borrow", FailureReason.BOOK_NOT_FOUND, book_id=book_id)
        if member is None:
            return self._reject("borrow", FailureReason.MEMBER_NOT_FOUND, member_id=member_id)
        if not self.can_member_borrow(member_id):
            return self._reject("borrow", FailureReason.BORROW_LIMIT, member_id=member_id)
        if not book.is_available:
            return self._reject("borrow", FailureReason.BOOK_BORROWED, book_id=book_id)

        book.dequeue(member.id)
        book.lend_to(member.id, self._default_due_date())
        self.book_repository.save(book)

        logger.info("Book %s borrowed by %s, due %s", book.id, member.id, book.due_date)
        return LendingResult.success()

    def return_book(self, book_id: str, member_id: str) -> ReturnResult:
        """
        Return a book and pass it to the next eligible member in its queue.

        Only the current holder can return a book. Every failure looks the
        same: unknown book, unknown member and wrong member all produce
        ``ReturnResult.failure()`` with no state change.
        """
        book = self.book_repository.find_by_id(book_id)
        member = self.member_repository.find_by_id(member_id)

        if book is None or member is None or book.loaned_to != member.id:
            logger.debug("return rejected: book=%s member=%s", book_id, member_id)
            return ReturnResult.failure()

        next_member_id = self._pass_to_next_in_queue(book)
        self.book_repository.save(book)

        if next_member_id is None:
            logger.info("Book %s returned by %s and is now available", book.id, member.id)
        else:
            logger.info("Book %s returned by %s, passed to %s", book.id, member.id, next_member_id)
        return ReturnResult.success(next_member_id)

    def reserve_book(self, book_id: str, member_id: str) -> LendingResult:
        """
        Reserve a book, or borrow it outright when nobody else wants it.

        An available book with an empty queue goes straight to an eligible
        member. Otherwise the member joins the end of the queue.
        """
        book = self.book_repository.find_by_id(book_id)
        member = self.member_repository.find_by_id(member_id)

        if book is None:
            return self._reject("reserve", FailureReason.BOOK_NOT_FOUND, book_id=book_id)
        if member is None:
            return self._reject("reserve", FailureReason.MEMBER_NOT_FOUND, member_id=member_id)

        if not book.reservation_queue and book.is_available and self.can_member_borrow(member_id):
            return self.borrow_book(book_id, member_id)

        if book.loaned_to == member.id or member.id in book.reservation_queue:
            return self._reject(
                "reserve",
                FailureReason.DUPLICATE_RESERVATION,
                book_id=book_id,
                member_id=member_id,
            )

        book.enqueue(member.id)
        self.book_repository.save(book)

        logger.info(
            "Book %s reserved by %s at position %d",
            book.id,
            member.id,
            book.queue_position(member.id),
        )
        return LendingResult.success()

    def cancel_reservation(self, book_id: str, member_id: str) -> LendingResult:
        """Remove a member from a book's reservation queue."""
        book = self.book_repository.find_by_id(book_id)
        member = self.member_repository.find_by_id(member_id)

        if book is None:
            return self._reject("cancel", FailureReason.BOOK_NOT_FOUND, book_id=book_id)
        if member is None:
            return self._reject("cancel", FailureReason.MEMBER_NOT_FOUND, member_id=member_id)

        if not book.dequeue(member.id):
            return self._reject(
                "cancel", FailureReason.NOT_RESERVED, book_id=book_id, member_id=member_id
            )

        self.book_repository.save(book)
        logger.info("Reservation on book %s cancelled by %s", book.id, member.id)
        return LendingResult.success()

    def extend_loan(self, book_id: str, days: int) -> LendingResult:
        """
        Move a loan's due date by ``days``.

        Negative values shorten the loan. Zero is always rejected, before the
        book is even looked up. A shift past the range of ``date`` is also
        INVALID_EXTENSION.
        """
        if days == 0:
            return self._reject("extend", FailureReason.INVALID_EXTENSION, book_id=book_id)

        book = self.book_repository.find_by_id(book_id)
        if book is None:
            return self._reject("extend", FailureReason.BOOK_NOT_FOUND, book_id=book_id)
        if book.loaned_to is None:
            return self._reject("extend", FailureReason.NOT_LOANED, book_id=book_id)

        base_date = book.due_date or self._default_due_date()
        try:
            book.due_date = base_date + timedelta(days=days)
        except OverflowError:
            return self._reject(
                "extend", FailureReason.INVALID_EXTENSION, book_id=book_id, days=days
            )
        self.book_repository.save(book)

        logger.info("Loan on book %s extended by %d days, now due %s", book.id, days, book.due_date)
        return LendingResult.success()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search_books(
        self,
        title_contains: str | None = None,
        available_only: bool | None = None,
        loaned_to: str | None = None,
    ) -> list[Book]:
        """
        Find books matching every supplied filter.

        Args:
            title_contains: Case-insensitive substring of the title
            available_only: True for books nobody holds, False for books on loan
            loaned_to: Exact holder id; books with no holder never match
        """
        needle = title_contains.lower() if title_contains is not None else None

        results = []
        for book in self.book_repository.find_all():
            if needle is not None and needle not in book.title.lower():
                continue
            if loaned_to is not None and book.loaned_to != loaned_to:
                continue
            if available_only is not None and book.is_available != available_only:
                continue
            results.append(book)
        return results

    def overdue_books(self, as_of: date) -> list[Book]:
        """Books on loan whose due date is strictly before ``as_of``."""
        return [
            book
            for book in self.book_repository.find_all()
            if book.loaned_to is not None and book.due_date is not None and book.due_date < as_of
        ]

    def member_summary(self, member_id: str) -> MemberSummary:
        """A member's loans and their zero-based place in each queue they are in."""
        member = self.member_repository.find_by_id(member_id)
        if member is None:
            return MemberSummary(ok=False, reason=FailureReason.MEMBER_NOT_FOUND)

        loans = self.book_repository.find_by_borrower(member.id)
        reservations = []
        for book in self.book_repository.find_by_reservation(member.id):
            position = book.queue_position(member.id)
            if position is not None:
                reservations.append(ReservationPosition(book_id=book.id, position=position))

        return MemberSummary(ok=True, loans=loans, reservations=reservations)

    def find_book(self, book_id: str) -> Book | None:
        return self.book_repository.find_by_id(book_id)

    def all_books(self) -> list[Book]:
        return self.book_repository.find_all()

    def all_members(self) -> list[Member]:
        return self.member_repository.find_all()

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def create_book(self, book_id: str | None, title: str | None) -> LendingResult:
        """
        Add a book with no holder and an empty queue.

        The id is normalised by the model before the duplicate check, so
        " B1 " collides with an existing "B1" instead of replacing it.
        """
        if _is_blank(book_id) or _is_blank(title):
            return self._reject("create book", FailureReason.INVALID_REQUEST, book_id=book_id)

        try:
            book = Book(id=book_id, title=title)
        except ValidationError:
            return self._reject("create book", FailureReason.INVALID_REQUEST, book_id=book_id)

        if self.book_repository.find_by_id(book.id) is not None:
            return self._reject("create book", FailureReason.DUPLICATE_BOOK, book_id=book.id)

        self.book_repository.save(book)
        logger.info("Book %s created", book.id)
        return LendingResult.success()

    def update_book(self, book_id: str, title: str | None) -> LendingResult:
        book = self.book_repository.find_by_id(book_id)
        if book is None:
            return self._reject("update book", FailureReason.BOOK_NOT_FOUND, book_id=book_id)
        if _is_blank(title):
            return self._reject("update book", FailureReason.INVALID_REQUEST, book_id=book_id)

        try:
            book = Book.model_validate({**book.model_dump(), "title": title})
        except ValidationError:
            return self._reject("update book", FailureReason.INVALID_REQUEST, book_id=book_id)

        self.book_repository.save(book)
        logger.info("Book %s updated", book.id)
        return LendingResult.success()

    def delete_book(self, book_id: str) -> LendingResult:
        """
        Delete a book.

        The holder's loans are derived from books, so the holder (if any)
        needs no separate update, and queue entries are deleted with the book.
        """
        book = self.book_repository.find_by_id(book_id)
        if book is None:
            return self._reject("delete book", FailureReason.BOOK_NOT_FOUND, book_id=book_id)

        self.book_repository.delete(book)
        logger.info(
            "Book %s deleted (holder=%s, %d queued)",
            book.id,
            book.loaned_to,
            len(book.reservation_queue),
        )
        return LendingResult.success()

    def create_member(self, member_id: str | None, name: str | None) -> LendingResult:
        if _is_blank(member_id) or _is_blank(name):
            return self._reject("create member", FailureReason.INVALID_REQUEST, member_id=member_id)

        try:
            member = Member(id=member_id, name=name)
        except ValidationError:
            return self._reject("create member", FailureReason.INVALID_REQUEST, member_id=member_id)

        # Compare on the stripped id so padding cannot bypass the duplicate check
        if self.member_repository.find_by_id(member.id) is not None:
            return self._reject(
                "create member", FailureReason.DUPLICATE_MEMBER, member_id=member.id
            )

        self.member_repository.save(member)
        logger.info("Member %s created", member.id)
        return LendingResult.success()

    def update_member(self, member_id: str, name: str | None) -> LendingResult:
        member = self.member_repository.find_by_id(member_id)
        if member is None:
            return self._reject(
                "update member", FailureReason.MEMBER_NOT_FOUND, member_id=member_id
            )
        if _is_blank(name):
            return self._reject("update member", FailureReason.INVALID_REQUEST, member_id=member_id)

        try:
            member.name = name
        except ValidationError:
            return self._reject("update member", FailureReason.INVALID_REQUEST, member_id=member_id)

        self.member_repository.save(member)
        logger.info("Member %s updated", member.id)
        return LendingResult.success()

    def delete_member(self, member_id: str) -> LendingResult:
        """
        Delete a member after resolving their loans and reservations.

        Each book the member holds goes to the first eligible member in its
        queue (or becomes available). The member is then removed from every
        other queue so no stale entry can be promoted later. The member
        record is deleted last.
        """
        member = self.member_repository.find_by_id(member_id)
        if member is None:
            return self._reject(
                "delete member", FailureReason.MEMBER_NOT_FOUND, member_id=member_id
            )

        for book in self.book_repository.find_by_borrower(member.id):
            next_member_id = self._pass_to_next_in_queue(book, exclude=member.id)
            book.dequeue(member.id)
            self.book_repository.save(book)
            logger.info(
                "Book %s released by deleted member %s, passed to %s",
                book.id,
                member.id,
                next_member_id,
            )

        for book in self.book_repository.find_by_reservation(member.id):
            book.dequeue(member.id)
            self.book_repository.save(book)

        self.member_repository.delete(member)
        logger.info("Member %s deleted", member.id)
        return LendingResult.success()


def lending_service_for(session: Session, config: ServerConfig | None = None) -> LendingService:
    """Build a LendingService over SQL repositories sharing one session."""
    return LendingService(
        SqlBookRepository(session),
        SqlMemberRepository(session),
        config=config,
    )
