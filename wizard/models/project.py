"""Project and ProjectSummary models."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from wizard.database import Base, JSONType


class Project(Base):
    """A construction project created through the wizard."""

    __tablename__ = "projects"

    project_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    address = Column(Text)
    work_type = Column(Text)
    status = Column(Text, nullable=False, default="draft")  # 'draft', 'active', 'archived'
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    summary = relationship("ProjectSummary", back_populates="project", uselist=False, cascade="all, delete-orphan")


class ProjectSummary(Base):
    """Citation ledger plus the working template and its cost rollup."""

    __tablename__ = "project_summaries"

    summary_pk = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Uuid, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False, unique=True)
    user_id = Column(Text, nullable=False)

    # Ledger
    verified_facts = Column(JSONType, nullable=False, default=list)  # Ordered list of citation dicts
    ledger_version = Column(Integer, nullable=False, default=0)
    next_sequence = Column(Integer, nullable=False, default=1)

    # Working template
    trade = Column(Text)
    template_items = Column(JSONType, default=list)
    waste_percent = Column(Integer, nullable=False, default=10)
    markup_percent = Column(Float, nullable=False, default=0.0)
    site_condition = Column(Text, nullable=False, default="clear")  # 'clear', 'demolition'
    team_size = Column(Text)

    # Mirrored rollup
    material_cost = Column(Float, default=0.0)
    labor_cost = Column(Float, default=0.0)
    total_cost = Column(Float, default=0.0)  # Pre-tax net total
    cost_breakdown = Column(JSONType)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    project = relationship("Project", back_populates="summary")
