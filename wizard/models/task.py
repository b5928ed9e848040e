"""Project task model."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, Text, Uuid

from wizard.database import Base


class ProjectTask(Base):
    """A persisted phase task, sub-task or verification node."""

    __tablename__ = "project_tasks"

    task_pk = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Uuid, nullable=False, default=uuid.uuid4, unique=True)
    project_id = Column(Uuid, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    phase_task_key = Column(Text, nullable=False)  # e.g. 'task_installation_main'
    phase_id = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text)
    priority = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    assigned_to = Column(Text)
    start_date = Column(Date)
    due_date = Column(Date)
    is_sub_task = Column(Boolean, default=False)
    is_verification_node = Column(Boolean, default=False)
    total_cost = Column(Float)
    created_by = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_project_tasks_project_id", "project_id"),
        {"schema": None},
    )
