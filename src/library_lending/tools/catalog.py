"""
Catalog query tools for the Library Lending MCP Server.

Read-only tools over loan and reservation state:
1. search_books: filter by title substring, availability and holder
2. overdue_books: loans past their due date
3. member_summary: a member's loans and queue positions
"""

import logging
from datetime import date
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..database.session import session_scope
from ..services.lending_service import lending_service_for
from .responses import error_response, text_response

logger = logging.getLogger(__name__)


class SearchBooksInput(BaseModel):
    """
    Input schema for the search_books tool.

    Every filter is optional; omitted filters match everything.
    """

    title_contains: str | None = Field(
        default=None,
        description="Case-insensitive substring of the title",
        max_length=200,
        examples=["gatsby", "mockingbird"],
    )

    available_only: bool | None = Field(
        default=None,
        description="True for books nobody holds, False for books on loan, omit for both",
    )

    loaned_to: str | None = Field(
        default=None,
        description="Only books currently held by this member id",
        examples=["M1"],
    )

    @field_validator("title_contains", "loaned_to")
    @classmethod
    def strip_whitespace(cls, v: str | None) -> str | None:
        """Treat blank strings as an omitted filter."""
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class OverdueBooksInput(BaseModel):
    """Input schema for the overdue_books tool."""

    as_of: date | None = Field(
        default=None,
        description="Reference date; loans due strictly before it are overdue. Defaults to today",
        examples=["2024-03-01"],
    )


class MemberSummaryInput(BaseModel):
    """Input schema for the member_summary tool."""

    member_id: str = Field(
        ...,
        description="Identifier of the member",
        min_length=1,
        max_length=100,
        examples=["M1"],
    )


async def search_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the search_books tool."""
    try:
        try:
            params = SearchBooksInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid search parameters: %s", e)
            return error_response(f"Invalid search parameters: {e}")

        with session_scope() as session:
            books = lending_service_for(session).search_books(
                title_contains=params.title_contains,
                available_only=params.available_only,
                loaned_to=params.loaned_to,
            )

        if not books:
            message = "No books match the search."
        else:
            lines = [f"Found {len(books)} book(s):"]
            for book in books:
                status = f"on loan to {book.loaned_to}" if book.loaned_to else "available"
                lines.append(f"- {book.id}: {book.title} ({status})")
            message = "\n".join(lines)

        return text_response(
            message,
            {
                "books": [book.model_dump(mode="json") for book in books],
                "total": len(books),
                "filters": params.model_dump(exclude_none=True),
            },
        )

    except Exception as e:
        logger.exception("Unexpected error in search_books tool")
        return error_response(f"An unexpected error occurred: {e!s}")


async def overdue_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the overdue_books tool."""
    try:
        try:
            params = OverdueBooksInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid overdue parameters: %s", e)
            return error_response(f"Invalid overdue parameters: {e}")

        as_of = params.as_of or date.today()
        with session_scope() as session:
            books = lending_service_for(session).overdue_books(as_of)

        message = f"{len(books)} book(s) overdue as of {as_of.isoformat()}."
        for book in books:
            message += f"\n- {book.id}: {book.title} (held by {book.loaned_to}, due {book.due_date})"

        return text_response(
            message,
            {
                "as_of": as_of.isoformat(),
                "books": [book.model_dump(mode="json") for book in books],
            },
        )

    except Exception as e:
        logger.exception("Unexpected error in overdue_books tool")
        return error_response(f"An unexpected error occurred: {e!s}")


async def member_summary_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the member_summary tool."""
    try:
        try:
            params = MemberSummaryInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid member summary parameters: %s", e)
            return error_response(f"Invalid member summary parameters: {e}")

        with session_scope() as session:
            summary = lending_service_for(session).member_summary(params.member_id)

        if not summary.ok:
            return error_response(
                f"Member '{params.member_id}' not found", summary.reason
            )

        message = (
            f"Member '{params.member_id}' holds {len(summary.loans)} book(s) and is queued "
            f"for {len(summary.reservations)}."
        )
        return text_response(message, summary.model_dump(mode="json", exclude={"ok", "reason"}))

    except Exception as e:
        logger.exception("Unexpected error in member_summary tool")
        return error_response(f"An unexpected error occurred: {e!s}")


search_books = {
    "name": "search_books",
    "description": (
        "Search the catalog by title substring (case-insensitive), availability and "
        "current holder. Omitted filters match every book."
    ),
    "inputSchema": SearchBooksInput.model_json_schema(),
    "handler": search_books_handler,
}

overdue_books = {
    "name": "overdue_books",
    "description": "List books on loan whose due date is before the given date (default today).",
    "inputSchema": OverdueBooksInput.model_json_schema(),
    "handler": overdue_books_handler,
}

member_summary = {
    "name": "member_summary",
    "description": (
        "Show the books a member holds and their zero-based position in every "
        "reservation queue they have joined."
    ),
    "inputSchema": MemberSummaryInput.model_json_schema(),
    "handler": member_summary_handler,
}
