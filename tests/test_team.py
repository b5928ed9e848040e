"""Tests for team setup."""

import pytest

from wizard.models.team import ProjectMember, TeamInvitation
from wizard.schemas.citation import CitationType
from wizard.schemas.team import TeamMemberInvite
from wizard.services.citations import find_all, find_latest
from wizard.services.ledger import LedgerConflictError
from wizard.services.team import ACCESS_LEVELS, TeamService, team_member_count


@pytest.fixture
def members():
    return [
        TeamMemberInvite(type="email", access_level="foreman", email="sam@example.com"),
        TeamMemberInvite(type="user", access_level="inspector", user_id="user-2", user_name="Alex"),
        TeamMemberInvite(type="email", access_level="subcontractor", email="pat@example.com"),
    ]


def test_access_levels():
    """Test permission flags per role."""
    assert ACCESS_LEVELS["foreman"]["canUpdateTasks"]
    assert ACCESS_LEVELS["inspector"]["canSeeTasks"]
    assert not ACCESS_LEVELS["inspector"]["canUpdateTasks"]
    assert not ACCESS_LEVELS["client"]["canSeeTasks"]
    assert not any(level["canSeePrices"] for level in ACCESS_LEVELS.values())


def test_invite_team(test_db, project, mailer, members):
    """Test invitations, members, mail and the three citation kinds."""
    response = TeamService(test_db, mailer=mailer).invite_team(
        project.project_id, members, inviter_id="user-1", inviter_name="Jordan"
    )

    assert response.invitations_created == 2
    assert response.members_added == 1
    assert response.emails_sent == 2
    assert len(response.citation_ids) == 5
    assert [m["email"] for m in mailer.sent] == ["sam@example.com", "pat@example.com"]
    assert mailer.sent[0]["project_name"] == "Kitchen Reno"

    assert test_db.query(TeamInvitation).count() == 2
    assert test_db.query(ProjectMember).one().user_id == "user-2"
    assert team_member_count(test_db, project.project_id) == 3

    ledger, version = TeamService(test_db).ledger.get_ledger(project.project_id)
    assert version == response.ledger_version
    invites = find_all(ledger, CitationType.TEAM_MEMBER_INVITE)
    assert [c.answer for c in invites] == ["Email: sam@example.com", "User: Alex", "Email: pat@example.com"]

    structure = find_latest(ledger, CitationType.TEAM_STRUCTURE)
    assert structure.value["total_members"] == 3
    assert structure.value["by_role"] == {
        "foremen": 1,
        "subcontractors": 1,
        "inspectors": 1,
        "suppliers": 0,
        "clients": 0,
    }

    permissions = find_latest(ledger, CitationType.TEAM_PERMISSION_SET)
    assert permissions.value["permissions"][1] == {
        "name": "Alex",
        "role": "inspector",
        "canSeePrices": False,
        "canSeeTasks": True,
        "canUpdateTasks": False,
        "canManageTeam": False,
    }
    assert permissions.metadata["roles_used"] == ["foreman", "inspector", "subcontractor"]


def test_invites_accumulate_across_calls(test_db, project, mailer, members):
    service = TeamService(test_db, mailer=mailer)
    service.invite_team(project.project_id, members[:1], inviter_id="user-1")
    service.invite_team(project.project_id, members[1:], inviter_id="user-1")

    ledger, _ = service.ledger.get_ledger(project.project_id)
    assert len(find_all(ledger, CitationType.TEAM_MEMBER_INVITE)) == 3
    assert len(find_all(ledger, CitationType.TEAM_STRUCTURE)) == 1


def test_existing_member_not_duplicated(test_db, project, mailer, members):
    service = TeamService(test_db, mailer=mailer)
    service.invite_team(project.project_id, [members[1]], inviter_id="user-1")
    response = service.invite_team(project.project_id, [members[1]], inviter_id="user-1")

    assert response.members_added == 0
    assert test_db.query(ProjectMember).count() == 1


def test_failed_email_leaves_invitation_pending(test_db, project, mailer, members):
    mailer.succeed = False
    response = TeamService(test_db, mailer=mailer).invite_team(project.project_id, members[:1], inviter_id="user-1")

    assert response.emails_sent == 0
    assert test_db.query(TeamInvitation).one().status == "pending"


def test_stale_version_writes_nothing(test_db, project, mailer, members):
    with pytest.raises(LedgerConflictError):
        TeamService(test_db, mailer=mailer).invite_team(
            project.project_id, members, inviter_id="user-1", expected_version=0
        )

    assert test_db.query(TeamInvitation).count() == 0
    assert mailer.sent == []


def test_invite_requires_members(test_db, project, mailer):
    with pytest.raises(ValueError):
        TeamService(test_db, mailer=mailer).invite_team(project.project_id, [], inviter_id="user-1")


def test_member_invite_validation():
    with pytest.raises(ValueError):
        TeamMemberInvite(type="email", access_level="client")
    with pytest.raises(ValueError):
        TeamMemberInvite(type="user", access_level="client", email="x@example.com")
