"""Wizard chat message model."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, Uuid

from wizard.database import Base


class ChatMessage(Base):
    """One turn of the wizard conversation."""

    __tablename__ = "chat_messages"

    message_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    role = Column(Text, nullable=False)  # 'user', 'assistant'
    content = Column(Text, nullable=False)
    stage = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_chat_messages_project_id", "project_id"),
        {"schema": None},
    )
