"""Team invitation and membership models."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid

from wizard.database import Base


class TeamInvitation(Base):
    """Pending email invitation to join a project."""

    __tablename__ = "team_invitations"

    invitation_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    email = Column(Text, nullable=False)
    invited_by = Column(Text, nullable=False)
    role = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")  # 'pending', 'accepted', 'declined'
    created_at = Column(DateTime, default=datetime.utcnow)


class ProjectMember(Base):
    """Existing user added directly to a project."""

    __tablename__ = "project_members"

    member_pk = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Uuid, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Text, nullable=False)
    role = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("project_id", "user_id"),
        {"schema": None},
    )
