"""
Member repository implementation for the Library Lending MCP Server.

Members are identity-only records; loans and reservations are looked up
through the book repository.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..database.schema import Member as MemberDB
from ..database.session import mcp_safe_flush, mcp_safe_query
from ..models.member import Member as MemberModel
from .repository import MemberRepository

logger = logging.getLogger(__name__)


class SqlMemberRepository(MemberRepository):
    """SQLAlchemy-backed member repository."""

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    def _to_model(self, db_obj: MemberDB) -> MemberModel:
        return MemberModel.model_validate(db_obj, from_attributes=True)

    def _get_row(self, member_id: str) -> MemberDB | None:
        query = select(MemberDB).where(MemberDB.id == member_id)
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get member by ID",
        )

    def find_by_id(self, member_id: str) -> MemberModel | None:
        db_obj = self._get_row(member_id)
        if db_obj is None:
            return None
        return self._to_model(db_obj)

    def find_all(self) -> list[MemberModel]:
        query = select(MemberDB).order_by(MemberDB.id)
        results = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get all members",
        )
        return [self._to_model(row) for row in results]

    def save(self, member: MemberModel) -> MemberModel:
        """
        Insert or update a member.

        Raises:
            RepositoryException: On database errors
        """
        db_obj = self._get_row(member.id)
        if db_obj is None:
            db_obj = MemberDB(id=member.id)
            self.session.add(db_obj)

        db_obj.name = member.name

        mcp_safe_flush(self.session, "save member")
        logger.debug("Saved member %s", member.id)
        return member

    def delete(self, member: MemberModel) -> None:
        """
        Delete a member record.

        Raises:
            RepositoryException: On database errors, e.g. a book still on loan to the member
        """
        db_obj = self._get_row(member.id)
        if db_obj is None:
            return

        self.session.delete(db_obj)
        mcp_safe_flush(self.session, "delete member")
        logger.debug("Deleted member %s", member.id)
