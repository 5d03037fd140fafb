"""
Catalog and membership administration tools.

Creating, renaming and deleting books and members. Deletions cascade
through loan and reservation state: a deleted member's books go to the
next eligible reservation and the member leaves every queue; a deleted
book takes its queue with it.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..database.session import session_scope
from ..services.lending_service import lending_service_for
from .responses import error_response, text_response

logger = logging.getLogger(__name__)


class BookInput(BaseModel):
    """
    Input schema for create_book and update_book.

    The title is optional at this layer so that a missing or blank title
    is reported as INVALID_REQUEST instead of a schema error.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    book_id: str = Field(
        ...,
        description="Identifier of the book",
        min_length=1,
        max_length=100,
        examples=["B1"],
    )

    title: str | None = Field(
        default=None,
        description="Title of the book",
        max_length=500,
        examples=["The Great Gatsby"],
    )


class MemberInput(BaseModel):
    """Input schema for create_member and update_member."""

    model_config = ConfigDict(str_strip_whitespace=True)

    member_id: str = Field(
        ...,
        description="Identifier of the member",
        min_length=1,
        max_length=100,
        examples=["M1"],
    )

    name: str | None = Field(
        default=None,
        description="Display name of the member",
        max_length=200,
        examples=["Jane Doe"],
    )


class BookIdInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    book_id: str = Field(..., description="Identifier of the book", min_length=1, max_length=100)


class MemberIdInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    member_id: str = Field(
        ..., description="Identifier of the member", min_length=1, max_length=100
    )


async def create_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the create_book tool."""
    try:
        try:
            params = BookInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid book parameters: %s", e)
            return error_response(f"Invalid book parameters: {e}")

        with session_scope() as session:
            service = lending_service_for(session)
            result = service.create_book(params.book_id, params.title)
            book = service.find_book(params.book_id) if result.ok else None

        if not result.ok:
            return error_response(
                f"Cannot create book '{params.book_id}': {result.reason.value}", result.reason
            )

        return text_response(
            f"Book '{book.id}' created: {book.title}", {"book": book.model_dump(mode="json")}
        )

    except Exception as e:
        logger.exception("Unexpected error in create_book tool")
        return error_response(f"An unexpected error occurred: {e!s}")


async def update_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the update_book tool. Loan and queue state are untouched."""
    try:
        try:
            params = BookInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid book parameters: %s", e)
            return error_response(f"Invalid book parameters: {e}")

        with session_scope() as session:
            service = lending_service_for(session)
            result = service.update_book(params.book_id, params.title)
            book = service.find_book(params.book_id) if result.ok else None

        if not result.ok:
            return error_response(
                f"Cannot update book '{params.book_id}': {result.reason.value}", result.reason
            )

        return text_response(
            f"Book '{book.id}' renamed to: {book.title}", {"book": book.model_dump(mode="json")}
        )

    except Exception as e:
        logger.exception("Unexpected error in update_book tool")
        return error_response(f"An unexpected error occurred: {e!s}")


async def delete_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the delete_book tool."""
    try:
        try:
            params = BookIdInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid book parameters: %s", e)
            return error_response(f"Invalid book parameters: {e}")

        with session_scope() as session:
            result = lending_service_for(session).delete_book(params.book_id)

        if not result.ok:
            return error_response(
                f"Cannot delete book '{params.book_id}': {result.reason.value}", result.reason
            )

        return text_response(f"Book '{params.book_id}' deleted.")

    except Exception as e:
        logger.exception("Unexpected error in delete_book tool")
        return error_response(f"An unexpected error occurred: {e!s}")


async def create_member_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the create_member tool."""
    try:
        try:
            params = MemberInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid member parameters: %s", e)
            return error_response(f"Invalid member parameters: {e}")

        with session_scope() as session:
            result = lending_service_for(session).create_member(params.member_id, params.name)

        if not result.ok:
            return error_response(
                f"Cannot create member '{params.member_id}': {result.reason.value}",
                result.reason,
            )

        return text_response(
            f"Member '{params.member_id}' created.",
            {"member": {"id": params.member_id, "name": params.name.strip()}},
        )

    except Exception as e:
        logger.exception("Unexpected error in create_member tool")
        return error_response(f"An unexpected error occurred: {e!s}")


async def update_member_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the update_member tool."""
    try:
        try:
            params = MemberInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid member parameters: %s", e)
            return error_response(f"Invalid member parameters: {e}")

        with session_scope() as session:
            result = lending_service_for(session).update_member(params.member_id, params.name)

        if not result.ok:
            return error_response(
                f"Cannot update member '{params.member_id}': {result.reason.value}",
                result.reason,
            )

        return text_response(
            f"Member '{params.member_id}' updated.",
            {"member": {"id": params.member_id, "name": params.name.strip()}},
        )

    except Exception as e:
        logger.exception("Unexpected error in update_member tool")
        return error_response(f"An unexpected error occurred: {e!s}")


async def delete_member_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the delete_member tool.

    Books the member holds are passed to their next eligible reservation
    before the member is removed.
    """
    try:
        try:
            params = MemberIdInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid member parameters: %s", e)
            return error_response(f"Invalid member parameters: {e}")

        with session_scope() as session:
            result = lending_service_for(session).delete_member(params.member_id)

        if not result.ok:
            return error_response(
                f"Cannot delete member '{params.member_id}': {result.reason.value}",
                result.reason,
            )

        return text_response(f"Member '{params.member_id}' deleted.")

    except Exception as e:
        logger.exception("Unexpected error in delete_member tool")
        return error_response(f"An unexpected error occurred: {e!s}")


create_book = {
    "name": "create_book",
    "description": "Add a book to the catalog. Fails with INVALID_REQUEST or DUPLICATE_BOOK.",
    "inputSchema": BookInput.model_json_schema(),
    "handler": create_book_handler,
}

update_book = {
    "name": "update_book",
    "description": "Change a book's title. Fails with BOOK_NOT_FOUND or INVALID_REQUEST.",
    "inputSchema": BookInput.model_json_schema(),
    "handler": update_book_handler,
}

delete_book = {
    "name": "delete_book",
    "description": "Remove a book, its loan and its reservation queue. Fails with BOOK_NOT_FOUND.",
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": delete_book_handler,
}

create_member = {
    "name": "create_member",
    "description": "Register a member. Fails with INVALID_REQUEST or DUPLICATE_MEMBER.",
    "inputSchema": MemberInput.model_json_schema(),
    "handler": create_member_handler,
}

update_member = {
    "name": "update_member",
    "description": "Change a member's name. Fails with MEMBER_NOT_FOUND or INVALID_REQUEST.",
    "inputSchema": MemberInput.model_json_schema(),
    "handler": update_member_handler,
}

delete_member = {
    "name": "delete_member",
    "description": (
        "Remove a member. Their books pass to the next eligible reservation and they "
        "leave every reservation queue. Fails with MEMBER_NOT_FOUND."
    ),
    "inputSchema": MemberIdInput.model_json_schema(),
    "handler": delete_member_handler,
}
