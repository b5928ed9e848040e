"""Team routes."""

import uuid

from fastapi import APIRouter, Depends

from wizard.routes.deps import get_team_service, service_errors
from wizard.schemas.team import TeamInviteRequest, TeamInviteResponse
from wizard.services.team import ACCESS_LEVELS, TeamService

router = APIRouter(prefix="/projects/{project_id}/team", tags=["team"])


@router.post("/invite", response_model=TeamInviteResponse)
def invite_team(
    project_id: uuid.UUID,
    data: TeamInviteRequest,
    team: TeamService = Depends(get_team_service),
):
    """Invite members and cite the team structure and permissions."""
    with service_errors():
        return team.invite_team(
            project_id,
            data.members,
            inviter_id=data.inviter_id,
            inviter_name=data.inviter_name,
            expected_version=data.expected_version,
        )


@router.get("")
def list_team(
    project_id: uuid.UUID,
    team: TeamService = Depends(get_team_service),
):
    """Members, pending invitations and their permissions."""
    with service_errors():
        members, invitations = team.list_team(project_id)
    return {
        "members": [
            {"user_id": m.user_id, "role": m.role, "permissions": ACCESS_LEVELS.get(m.role)}
            for m in members
        ],
        "invitations": [
            {
                "invitation_id": str(i.invitation_id),
                "email": i.email,
                "role": i.role,
                "status": i.status,
                "created_at": i.created_at.isoformat() if i.created_at else None,
            }
            for i in invitations
        ],
    }
