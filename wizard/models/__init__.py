"""SQLAlchemy ORM models."""

from wizard.models.project import Project, ProjectSummary
from wizard.models.task import ProjectTask
from wizard.models.team import ProjectMember, TeamInvitation
from wizard.models.document import ProjectDocument
from wizard.models.message import ChatMessage

__all__ = [
    "Project",
    "ProjectSummary",
    "ProjectTask",
    "TeamInvitation",
    "ProjectMember",
    "ProjectDocument",
    "ChatMessage",
]
