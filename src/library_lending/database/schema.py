"""
SQLAlchemy database schema for the Library Lending MCP Server.

Three tables back the two repositories:
1. members - identity only
2. books - catalog entry plus the loan relation (holder and due date)
3. book_reservations - one row per queued member with an explicit position

A member's loans and reservations are answered by querying books and
book_reservations; there are no inverse relationship collections on Member.
"""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

# Base class for all SQLAlchemy models
Base = declarative_base()


class Member(Base):
    """Members table - library members who borrow and reserve books."""

    __tablename__ = "members"

    id = Column(String(100), primary_key=True)
    name = Column(String(200), nullable=False, index=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())


class Book(Base):
    """
    Books table - the lendable catalog.

    ``loaned_to_member_id`` is the owning side of the loan relation and
    ``due_date`` is populated only while it is set.
    """

    __tablename__ = "books"

    id = Column(String(100), primary_key=True)
    title = Column(String(500), nullable=False, index=True)
    loaned_to_member_id = Column(String(100), ForeignKey("members.id"), nullable=True)
    due_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    # Reservation queue in priority order
    reservations = relationship(
        "BookReservation",
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="BookReservation.position",
    )

    __table_args__ = (
        Index("idx_book_loaned_to", "loaned_to_member_id"),
        Index("idx_book_due_date", "due_date"),
    )


class BookReservation(Base):
    """
    Reservation queue entries - one row per (book, member).

    The composite primary key keeps a member from queueing twice for the
    same book. ``member_id`` has no foreign key: entries for members deleted
    outside the lending service are skipped at promotion time.
    """

    __tablename__ = "book_reservations"

    book_id = Column(String(100), ForeignKey("books.id", ondelete="CASCADE"), primary_key=True)
    member_id = Column(String(100), primary_key=True)
    position = Column(Integer, nullable=False)

    created_at = Column(DateTime, nullable=False, default=func.now())

    book = relationship("Book", back_populates="reservations")

    __table_args__ = (
        Index("idx_reservation_member", "member_id"),
        Index("idx_reservation_queue", "book_id", "position"),
    )
