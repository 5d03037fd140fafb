"""
Library Lending MCP Server Models.

Pydantic models for the entities and results handled by the lending service:
- Book: a lendable copy with its loan and reservation queue
- Member: a library member (identity only)
- Results: typed outcomes with symbolic failure reasons
"""

from .book import Book
from .member import Member
from .results import (
    FailureReason,
    LendingResult,
    MemberSummary,
    ReservationPosition,
    ReturnResult,
)

__all__ = [
    "Book",
    "FailureReason",
    "LendingResult",
    "Member",
    "MemberSummary",
    "ReservationPosition",
    "ReturnResult",
]
