"""Team setup: member invitations, roles and permission sets."""

import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from wizard.models.team import ProjectMember, TeamInvitation
from wizard.schemas.citation import CitationDraft, CitationType
from wizard.schemas.team import TeamInviteResponse, TeamMemberInvite
from wizard.services.ledger import LedgerService
from wizard.services.notifications import InvitationMailer

logger = logging.getLogger(__name__)

ACCESS_LEVELS = {
    "foreman": {
        "label": "Foreman",
        "canSeePrices": False,
        "canSeeTasks": True,
        "canUpdateTasks": True,
        "canManageTeam": False,
    },
    "subcontractor": {
        "label": "Subcontractor",
        "canSeePrices": False,
        "canSeeTasks": True,  # own scope only
        "canUpdateTasks": True,
        "canManageTeam": False,
    },
    "inspector": {
        "label": "Inspector / QC",
        "canSeePrices": False,
        "canSeeTasks": True,
        "canUpdateTasks": False,
        "canManageTeam": False,
    },
    "supplier": {
        "label": "Supplier / Vendor",
        "canSeePrices": False,
        "canSeeTasks": False,
        "canUpdateTasks": False,
        "canManageTeam": False,
    },
    "client": {
        "label": "Client Representative",
        "canSeePrices": False,
        "canSeeTasks": False,
        "canUpdateTasks": False,
        "canManageTeam": False,
    },
}

PERMISSION_FLAGS = ("canSeePrices", "canSeeTasks", "canUpdateTasks", "canManageTeam")

# TEAM_STRUCTURE.by_role keys
ROLE_GROUPS = {
    "foreman": "foremen",
    "subcontractor": "subcontractors",
    "inspector": "inspectors",
    "supplier": "suppliers",
    "client": "clients",
}


def member_label(member: TeamMemberInvite) -> str:
    return member.email if member.type == "email" else (member.user_name or member.user_id)


def member_citation(member: TeamMemberInvite, invited_at: str) -> CitationDraft:
    level = ACCESS_LEVELS[member.access_level]
    answer = f"Email: {member.email}" if member.type == "email" else f"User: {member_label(member)}"
    return CitationDraft(
        cite_type=CitationType.TEAM_MEMBER_INVITE,
        question_key="team_member_invite",
        answer=answer,
        value={
            "type": member.type,
            "email": member.email,
            "user_id": member.user_id,
            "user_name": member.user_name,
            "access_level": member.access_level,
        },
        metadata={
            "access_level": member.access_level,
            "can_see_prices": level["canSeePrices"],
            "can_see_tasks": level["canSeeTasks"],
            "invited_at": invited_at,
        },
    )


def structure_citation(project_id, members: List[TeamMemberInvite], configured_at: str) -> CitationDraft:
    counts = Counter(m.access_level for m in members)
    return CitationDraft(
        cite_type=CitationType.TEAM_STRUCTURE,
        question_key="team_structure",
        answer=f"Team: {len(members)} member(s) configured",
        value={
            "total_members": len(members),
            "by_role": {group: counts.get(level, 0) for level, group in ROLE_GROUPS.items()},
        },
        metadata={"configured_at": configured_at, "project_id": str(project_id)},
    )


def permission_citation(members: List[TeamMemberInvite], configured_at: str) -> CitationDraft:
    permissions = []
    for member in members:
        level = ACCESS_LEVELS[member.access_level]
        entry = {"name": member_label(member), "role": member.access_level}
        entry.update({flag: level[flag] for flag in PERMISSION_FLAGS})
        permissions.append(entry)

    roles_used = []
    for member in members:
        if member.access_level not in roles_used:
            roles_used.append(member.access_level)

    return CitationDraft(
        cite_type=CitationType.TEAM_PERMISSION_SET,
        question_key="team_permissions",
        answer=f"{len(members)} permission set(s) configured",
        value={"permissions": permissions},
        metadata={"configured_at": configured_at, "roles_used": roles_used},
    )


class TeamService:
    """Writes team citations and the invitation and membership rows."""

    def __init__(self, db: Session, mailer: Optional[InvitationMailer] = None):
        """Initialize with a session and an optional mailer."""
        self.db = db
        self.ledger = LedgerService(db)
        self.mailer = mailer or InvitationMailer()

    def invite_team(
        self,
        project_id: uuid.UUID,
        members: List[TeamMemberInvite],
        inviter_id: str,
        inviter_name: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> TeamInviteResponse:
        """
        Record the team in one ledger write.

        Email members get a pending invitation row and an invitation email
        once the write commits. Existing users become project members
        directly; users already on the project are left as they are.

        Raises:
            ValueError: If members is empty
            LedgerConflictError: If expected_version is stale
        """
        if not members:
            raise ValueError("Add at least one team member")

        summary = self.ledger.get_summary(project_id)
        project = summary.project
        now = datetime.now(timezone.utc).isoformat()

        drafts = [member_citation(m, now) for m in members]
        drafts.append(structure_citation(project_id, members, now))
        drafts.append(permission_citation(members, now))

        invited = []
        members_added = 0
        existing_users = {
            row.user_id for row in
            self.db.query(ProjectMember).filter(ProjectMember.project_id == project_id).all()
        }
        for member in members:
            if member.type == "email":
                self.db.add(TeamInvitation(
                    project_id=project_id,
                    email=member.email,
                    invited_by=inviter_id,
                    role=member.access_level,
                    status="pending",
                ))
                invited.append(member)
            elif member.user_id not in existing_users:
                self.db.add(ProjectMember(
                    project_id=project_id,
                    user_id=member.user_id,
                    role=member.access_level,
                ))
                existing_users.add(member.user_id)
                members_added += 1

        created, version = self.ledger.append(project_id, drafts, expected_version=expected_version)

        emails_sent = 0
        for member in invited:
            sent = self.mailer.send_invitation(
                recipient_email=member.email,
                project_name=project.name if project else "Unnamed Project",
                project_id=project_id,
                inviter_name=inviter_name or "A project owner",
                role=member.access_level,
            )
            emails_sent += int(sent)

        logger.info(
            f"Team setup for project {project_id}: {len(invited)} invitation(s), "
            f"{members_added} member(s) added, {emails_sent} email(s) sent"
        )
        return TeamInviteResponse(
            citation_ids=[c.id for c in created],
            invitations_created=len(invited),
            members_added=members_added,
            emails_sent=emails_sent,
            ledger_version=version,
        )

    def list_team(self, project_id: uuid.UUID):
        """Members and pending invitations for a project."""
        self.ledger.get_summary(project_id)
        members = self.db.query(ProjectMember).filter(ProjectMember.project_id == project_id).all()
        invitations = self.db.query(TeamInvitation).filter(TeamInvitation.project_id == project_id).all()
        return members, invitations


def team_member_count(db: Session, project_id: uuid.UUID) -> int:
    """Members plus invitations still open."""
    members = db.query(ProjectMember).filter(ProjectMember.project_id == project_id).count()
    pending = db.query(TeamInvitation).filter(
        TeamInvitation.project_id == project_id,
        TeamInvitation.status == "pending",
    ).count()
    return members + pending
