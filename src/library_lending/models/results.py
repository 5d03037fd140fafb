"""
Result types returned by the lending service.

Expected business outcomes are never raised as exceptions. Each operation
returns one of these models: a success flag plus, on failure, a reason code
from a fixed vocabulary. Transports pass the reason strings through as-is.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from .book import Book


class FailureReason(str, Enum):
    """Symbolic reason codes for rejected operations."""

    BOOK_NOT_FOUND = "BOOK_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    BORROW_LIMIT = "BORROW_LIMIT"
    BOOK_BORROWED = "BOOK_BORROWED"
    DUPLICATE_RESERVATION = "DUPLICATE_RESERVATION"
    NOT_RESERVED = "NOT_RESERVED"
    INVALID_EXTENSION = "INVALID_EXTENSION"
    NOT_LOANED = "NOT_LOANED"
    INVALID_REQUEST = "INVALID_REQUEST"
    DUPLICATE_BOOK = "DUPLICATE_BOOK"
    DUPLICATE_MEMBER = "DUPLICATE_MEMBER"


class LendingResult(BaseModel):
    """Outcome of a lending or administrative operation."""

    ok: bool
    reason: FailureReason | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def success(cls) -> "LendingResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: FailureReason) -> "LendingResult":
        return cls(ok=False, reason=reason)


class ReturnResult(BaseModel):
    """
    Outcome of a return.

    Failures carry no reason: an unknown book, an unknown member and a
    member who is not the current holder all look the same to the caller.
    On success ``next_member_id`` names the member the book passed to, if any.
    """

    ok: bool
    next_member_id: str | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def success(cls, next_member_id: str | None) -> "ReturnResult":
        return cls(ok=True, next_member_id=next_member_id)

    @classmethod
    def failure(cls) -> "ReturnResult":
        return cls(ok=False)


class ReservationPosition(BaseModel):
    """A member's zero-based place in one book's reservation queue."""

    book_id: str
    position: int

    model_config = ConfigDict(frozen=True)


class MemberSummary(BaseModel):
    """Loans and reservation positions for a single member."""

    ok: bool
    reason: FailureReason | None = None
    loans: list[Book] = []
    reservations: list[ReservationPosition] = []
