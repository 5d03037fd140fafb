"""
Circulation tools for the Library Lending MCP Server.

These tools change loan and reservation state:
1. borrow_book: lend an available book to an eligible member
2. return_book: return a book and pass it to the next eligible reservation
3. reserve_book: queue for a book (or borrow it if nobody else wants it)
4. cancel_reservation: leave a book's reservation queue
5. extend_loan: move a loan's due date

Each call is one unit of work: the session scope commits when the service
returns and rolls back if anything raises. Rejections from the service are
returned as MCP errors carrying the reason code.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.session import session_scope
from ..models.results import FailureReason
from ..services.lending_service import LendingService, lending_service_for
from .responses import error_response, text_response

logger = logging.getLogger(__name__)


# =============================================================================
# INPUT SCHEMAS
# =============================================================================

class BookMemberInput(BaseModel):
    """
    Input schema for tools that act on one book for one member.

    Shared by borrow_book, return_book, reserve_book and cancel_reservation.
    """

    book_id: str = Field(
        ...,
        description="Identifier of the book",
        min_length=1,
        max_length=100,
        examples=["B1", "book-gatsby-001"],
    )

    member_id: str = Field(
        ...,
        description="Identifier of the member",
        min_length=1,
        max_length=100,
        examples=["M1", "member-jane-doe"],
    )


class ExtendLoanInput(BaseModel):
    """Input schema for the extend_loan tool."""

    book_id: str = Field(
        ...,
        description="Identifier of the loaned book",
        min_length=1,
        max_length=100,
        examples=["B1"],
    )

    days: int = Field(
        ...,
        description="Days to add to the due date; negative values shorten the loan",
        examples=[7, 14, -3],
    )


def _book_data(service: LendingService, book_id: str) -> dict[str, Any] | None:
    book = service.find_book(book_id)
    return book.model_dump(mode="json") if book else None


# =============================================================================
# BORROW
# =============================================================================

async def borrow_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the borrow_book tool.

    Failure reasons, in the order they are checked: BOOK_NOT_FOUND,
    MEMBER_NOT_FOUND, BORROW_LIMIT, BOOK_BORROWED.
    """
    try:
        try:
            params = BookMemberInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid borrow parameters: %s", e)
            return error_response(f"Invalid borrow parameters: {e}")

        with session_scope() as session:
            service = lending_service_for(session)
            result = service.borrow_book(params.book_id, params.member_id)
            book = _book_data(service, params.book_id) if result.ok else None

        if not result.ok:
            logger.info("Borrow failed - %s", result.reason.value)
            return error_response(
                f"Cannot borrow book '{params.book_id}' for member '{params.member_id}': "
                f"{result.reason.value}",
                result.reason,
            )

        return text_response(
            f"Book '{params.book_id}' borrowed by member '{params.member_id}'. "
            f"Due date: {book['due_date']}",
            {"book": book},
        )

    except Exception as e:
        logger.exception("Unexpected error in borrow_book tool")
        return error_response(f"An unexpected error occurred: {e!s}")


# =============================================================================
# RETURN
# =============================================================================

async def return_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the return_book tool.

    Returns carry no reason code on failure: an unknown book, an unknown
    member and a member who does not hold the book are reported alike.
    """
    try:
        try:
            params = BookMemberInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid return parameters: %s", e)
            return error_response(f"Invalid return parameters: {e}")

        with session_scope() as session:
            service = lending_service_for(session)
            result = service.return_book(params.book_id, params.member_id)
            book = _book_data(service, params.book_id) if result.ok else None

        if not result.ok:
            logger.info("Return failed for book %s", params.book_id)
            return error_response(
                f"Cannot return book '{params.book_id}' for member '{params.member_id}'"
            )

        message = f"Book '{params.book_id}' returned by member '{params.member_id}'."
        if result.next_member_id:
            message += f" Now on loan to reservation holder '{result.next_member_id}'."
        else:
            message += " The book is available."

        return text_response(message, {"next_member_id": result.next_member_id, "book": book})

    except Exception as e:
        logger.exception("Unexpected error in return_book tool")
        return error_response(f"An unexpected error occurred: {e!s}")


# =============================================================================
# RESERVATIONS
# =============================================================================

async def reserve_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the reserve_book tool.

    If the book is available with nobody queued and the member may borrow,
    the reservation becomes a loan immediately; the response says which
    happened.
    """
    try:
        try:
            params = BookMemberInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid reservation parameters: %s", e)
            return error_response(f"Invalid reservation parameters: {e}")

        with session_scope() as session:
            service = lending_service_for(session)
            result = service.reserve_book(params.book_id, params.member_id)
            book = _book_data(service, params.book_id) if result.ok else None

        if not result.ok:
            logger.info("Reservation failed - %s", result.reason.value)
            return error_response(
                f"Cannot reserve book '{params.book_id}' for member '{params.member_id}': "
                f"{result.reason.value}",
                result.reason,
            )

        if book["loaned_to"] == params.member_id:
            message = (
                f"Book '{params.book_id}' was available and is now on loan to "
                f"member '{params.member_id}'. Due date: {book['due_date']}"
            )
            position = None
        else:
            position = book["reservation_queue"].index(params.member_id)
            message = (
                f"Book '{params.book_id}' reserved for member '{params.member_id}'. "
                f"Queue position: {position}"
            )

        return text_response(message, {"book": book, "queue_position": position})

    except Exception as e:
        logger.exception("Unexpected error in reserve_book tool")
        return error_response(f"An unexpected error occurred: {e!s}")


async def cancel_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the cancel_reservation tool."""
    try:
        try:
            params = BookMemberInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid cancellation parameters: %s", e)
            return error_response(f"Invalid cancellation parameters: {e}")

        with session_scope() as session:
            result = lending_service_for(session).cancel_reservation(
                params.book_id, params.member_id
            )

        if not result.ok:
            logger.info("Cancellation failed - %s", result.reason.value)
            return error_response(
                f"Cannot cancel reservation on '{params.book_id}' for member "
                f"'{params.member_id}': {result.reason.value}",
                result.reason,
            )

        return text_response(
            f"Reservation on book '{params.book_id}' cancelled for member '{params.member_id}'."
        )

    except Exception as e:
        logger.exception("Unexpected error in cancel_reservation tool")
        return error_response(f"An unexpected error occurred: {e!s}")


# =============================================================================
# LOAN EXTENSION
# =============================================================================

async def extend_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the extend_loan tool."""
    try:
        try:
            params = ExtendLoanInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid extension parameters: %s", e)
            bad_days = any(error["loc"] == ("days",) for error in e.errors())
            return error_response(
                f"Invalid extension parameters: {e}",
                FailureReason.INVALID_EXTENSION if bad_days else None,
            )

        with session_scope() as session:
            service = lending_service_for(session)
            result = service.extend_loan(params.book_id, params.days)
            book = _book_data(service, params.book_id) if result.ok else None

        if not result.ok:
            logger.info("Extension failed - %s", result.reason.value)
            return error_response(
                f"Cannot extend loan on '{params.book_id}': {result.reason.value}",
                result.reason,
            )

        return text_response(
            f"Loan on book '{params.book_id}' now due {book['due_date']}.",
            {"book": book},
        )

    except Exception as e:
        logger.exception("Unexpected error in extend_loan tool")
        return error_response(f"An unexpected error occurred: {e!s}")


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

borrow_book = {
    "name": "borrow_book",
    "description": (
        "Lend an available book to a member for the standard loan period. Fails with "
        "BOOK_NOT_FOUND, MEMBER_NOT_FOUND, BORROW_LIMIT (member already holds the maximum "
        "number of books) or BOOK_BORROWED, checked in that order."
    ),
    "inputSchema": BookMemberInput.model_json_schema(),
    "handler": borrow_book_handler,
}

return_book = {
    "name": "return_book",
    "description": (
        "Return a book held by the member. The book passes to the first member in its "
        "reservation queue who is still under the borrow limit; the response names them."
    ),
    "inputSchema": BookMemberInput.model_json_schema(),
    "handler": return_book_handler,
}

reserve_book = {
    "name": "reserve_book",
    "description": (
        "Join a book's reservation queue. If the book is available and nobody is queued, "
        "an eligible member borrows it immediately instead. Fails with BOOK_NOT_FOUND, "
        "MEMBER_NOT_FOUND or DUPLICATE_RESERVATION."
    ),
    "inputSchema": BookMemberInput.model_json_schema(),
    "handler": reserve_book_handler,
}

cancel_reservation = {
    "name": "cancel_reservation",
    "description": (
        "Leave a book's reservation queue. Fails with BOOK_NOT_FOUND, MEMBER_NOT_FOUND "
        "or NOT_RESERVED."
    ),
    "inputSchema": BookMemberInput.model_json_schema(),
    "handler": cancel_reservation_handler,
}

extend_loan = {
    "name": "extend_loan",
    "description": (
        "Move a loan's due date by a number of days (negative shortens it). Fails with "
        "INVALID_EXTENSION for zero days, BOOK_NOT_FOUND or NOT_LOANED."
    ),
    "inputSchema": ExtendLoanInput.model_json_schema(),
    "handler": extend_loan_handler,
}
