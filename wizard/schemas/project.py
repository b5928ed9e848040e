"""Project-related Pydantic schemas."""

from datetime import date
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel


class Coordinates(BaseModel):
    """Latitude/longitude pair."""

    lat: float
    lng: float


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""

    name: str
    user_id: str
    address: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    work_type: Optional[str] = None
    source_message_id: Optional[str] = None


class ProjectResponse(BaseModel):
    """Project with ledger version."""

    project_id: UUID
    name: str
    address: Optional[str]
    work_type: Optional[str]
    status: str
    ledger_version: int


class RenameRequest(BaseModel):
    """Rename a project."""

    name: str
    expected_version: Optional[int] = None
    source_message_id: Optional[str] = None


class LocationRequest(BaseModel):
    """Set the project address."""

    address: str
    coordinates: Optional[Coordinates] = None
    geocode: bool = True
    expected_version: Optional[int] = None
    source_message_id: Optional[str] = None


class WorkTypeRequest(BaseModel):
    """Set the work type."""

    work_type: str
    expected_version: Optional[int] = None
    source_message_id: Optional[str] = None


class GFARequest(BaseModel):
    """Free-text GFA input such as '1500 sq ft' or '140 sqm'."""

    input: str
    expected_version: Optional[int] = None
    source_message_id: Optional[str] = None


class TeamSizeRequest(BaseModel):
    """Pick a team size."""

    team_size: Literal["solo", "small", "team", "large"]
    expected_version: Optional[int] = None


class FinalizeRequest(BaseModel):
    """Finalize the project DNA."""

    timeline: Literal["asap", "scheduled"] = "asap"
    scheduled_date: Optional[date] = None
    end_date: Optional[date] = None
    expected_version: Optional[int] = None


class MessageCreate(BaseModel):
    """Wizard chat message."""

    role: Literal["user", "assistant"]
    content: str
    stage: Optional[str] = None


class MessageResponse(BaseModel):
    """Stored chat message."""

    message_id: UUID
    role: str
    content: str
    stage: Optional[str]
    created_at: Optional[str]


class ReviewSection(BaseModel):
    """One stage section of the final review."""

    id: str
    stage_number: int
    title: str
    visibility_tier: str
    restricted: bool
    citations: List[Dict[str, Any]]


class ReviewResponse(BaseModel):
    """Role-filtered final review."""

    project_id: UUID
    role: str
    can_edit: bool
    can_view_financials: bool
    sections: List[ReviewSection]


class HealthResponse(BaseModel):
    """Project health score."""

    score: int
    completed_count: int
    total_count: int
    completed_pillars: List[str]
    missing_pillars: List[str]
    is_solo_mode: bool
    health_status: str
    status_label: str
