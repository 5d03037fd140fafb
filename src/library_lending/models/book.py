"""
Book model for the Library Lending MCP Server.

A Book is a single physical copy tracked by the lending service. It owns
both sides of its circulation state:

1. The loan relation - ``loaned_to`` names the member holding the copy and
   ``due_date`` is set exactly when a loan exists
2. The reservation queue - an ordered list of member ids, earliest
   reservation first, with no member listed twice

The member side of these relations (a member's loans and reservations) is
never stored; it is derived by querying books.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Book(BaseModel):
    """
    Represents a lendable book in the library catalog.

    Mutations go through the helper methods so the loan and queue
    invariants are kept together.
    """

    id: str = Field(
        ...,
        description="Externally assigned, stable book identifier",
        min_length=1,
        max_length=100,
        examples=["B1", "book-gatsby-001"],
    )

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby", "To Kill a Mockingbird"],
    )

    loaned_to: str | None = Field(
        default=None,
        description="Id of the member currently holding the book, or None when available",
        examples=["M1", None],
    )

    due_date: date | None = Field(
        default=None,
        description="Date the current loan is due; present only while the book is loaned",
        examples=["2024-02-15"],
    )

    reservation_queue: list[str] = Field(
        default_factory=list,
        description="Member ids waiting for the book, in priority order",
        examples=[["M3", "M4"]],
    )

    @field_validator("reservation_queue")
    @classmethod
    def validate_unique_queue(cls, v: list[str]) -> list[str]:
        """A member can hold only one place in a queue."""
        if len(set(v)) != len(v):
            raise ValueError("Reservation queue cannot contain the same member twice")
        return v

    @model_validator(mode="after")
    def validate_loan_state(self) -> "Book":
        """A due date only makes sense while the book is on loan."""
        if self.due_date is not None and self.loaned_to is None:
            raise ValueError("Due date cannot be set on a book that is not loaned")
        return self

    @property
    def is_available(self) -> bool:
        """Check if nobody currently holds the book."""
        return self.loaned_to is None

    def lend_to(self, member_id: str, due_date: date) -> None:
        """Hand the book to a member, leaving the reservation queue untouched."""
        self.loaned_to = member_id
        self.due_date = due_date

    def release(self) -> None:
        """Clear the loan."""
        self.loaned_to = None
        self.due_date = None

    def enqueue(self, member_id: str) -> None:
        """
        Append a member to the end of the reservation queue.

        Raises:
            ValueError: If the member is already queued
        """
        if member_id in self.reservation_queue:
            raise ValueError(f"Member {member_id} already reserved '{self.title}'")
        self.reservation_queue.append(member_id)

    def dequeue(self, member_id: str) -> bool:
        """Remove a member from the queue. Returns False if they were not queued."""
        if member_id not in self.reservation_queue:
            return False
        self.reservation_queue.remove(member_id)
        return True

    def queue_position(self, member_id: str) -> int | None:
        """Zero-based position of a member in the queue, or None."""
        try:
            return self.reservation_queue.index(member_id)
        except ValueError:
            return None

    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "id": "B1",
                "title": "The Great Gatsby",
                "loaned_to": "M2",
                "due_date": "2024-02-15",
                "reservation_queue": ["M3"],
            }
        },
    )
