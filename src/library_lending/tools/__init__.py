"""
MCP tools for the Library Lending Server.

Each tool is a dictionary with ``name``, ``description``, ``inputSchema``
and an async ``handler``. Handlers validate their arguments with Pydantic,
run one lending operation inside a database unit of work and return an
MCP result; rejected operations come back with ``isError`` and a reason
code in ``data.reason``.
"""

from .admin import (
    create_book,
    create_member,
    delete_book,
    delete_member,
    update_book,
    update_member,
)
from .catalog import member_summary, overdue_books, search_books
from .circulation import (
    borrow_book,
    cancel_reservation,
    extend_loan,
    reserve_book,
    return_book,
)

# Registration order is the order clients see in tools/list
all_tools = [
    borrow_book,
    return_book,
    reserve_book,
    cancel_reservation,
    extend_loan,
    search_books,
    overdue_books,
    member_summary,
    create_book,
    update_book,
    delete_book,
    create_member,
    update_member,
    delete_member,
]

__all__ = [
    "all_tools",
    "borrow_book",
    "cancel_reservation",
    "create_book",
    "create_member",
    "delete_book",
    "delete_member",
    "extend_loan",
    "member_summary",
    "overdue_books",
    "reserve_book",
    "return_book",
    "search_books",
    "update_book",
    "update_member",
]
