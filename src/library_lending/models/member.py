"""
Member model for the Library Lending MCP Server.

Members borrow and reserve books. The model carries identity only: a
member's loans are the books whose ``loaned_to`` names them, and their
reservations are the books whose queue contains them. Both are answered by
the book repository on demand.
"""

from pydantic import BaseModel, ConfigDict, Field


class Member(BaseModel):
    """Represents a library member who can borrow and reserve books."""

    id: str = Field(
        ...,
        description="Unique identifier for the member",
        min_length=1,
        max_length=100,
        examples=["M1", "member-jane-doe"],
    )

    name: str = Field(
        ...,
        description="Full name of the member",
        min_length=1,
        max_length=200,
        examples=["John Smith", "Jane Doe"],
    )

    model_config = ConfigDict(
        validate_assignment=True,
        str_strip_whitespace=True,
        extra="forbid",
        json_schema_extra={"example": {"id": "M1", "name": "Jane Doe"}},
    )
