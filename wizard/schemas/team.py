"""Team-related Pydantic schemas."""

from typing import List, Literal, Optional

from pydantic import BaseModel, model_validator

AccessLevel = Literal["foreman", "subcontractor", "inspector", "supplier", "client"]


class TeamMemberInvite(BaseModel):
    """A member to add, either by email or as an existing user."""

    type: Literal["email", "user"]
    access_level: AccessLevel
    email: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    @model_validator(mode="after")
    def check_identity(self):
        if self.type == "email" and not self.email:
            raise ValueError("email invites require an email")
        if self.type == "user" and not self.user_id:
            raise ValueError("user invites require a user_id")
        return self


class TeamInviteRequest(BaseModel):
    """Team setup submission."""

    inviter_id: str
    inviter_name: Optional[str] = None
    members: List[TeamMemberInvite]
    expected_version: Optional[int] = None


class TeamInviteResponse(BaseModel):
    """Result of a team setup submission."""

    citation_ids: List[str]
    invitations_created: int
    members_added: int
    emails_sent: int
    ledger_version: int
