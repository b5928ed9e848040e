"""Citation schemas."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CitationType(str, Enum):
    """Semantic tag of a cited project fact."""

    PROJECT_NAME = "PROJECT_NAME"
    LOCATION = "LOCATION"
    WORK_TYPE = "WORK_TYPE"
    GFA_LOCK = "GFA_LOCK"
    TRADE_SELECTION = "TRADE_SELECTION"
    TEMPLATE_LOCK = "TEMPLATE_LOCK"
    TEAM_SIZE = "TEAM_SIZE"
    EXECUTION_MODE = "EXECUTION_MODE"
    SITE_CONDITION = "SITE_CONDITION"
    DEMOLITION_PRICE = "DEMOLITION_PRICE"
    TIMELINE = "TIMELINE"
    END_DATE = "END_DATE"
    BLUEPRINT_UPLOAD = "BLUEPRINT_UPLOAD"
    SITE_PHOTO = "SITE_PHOTO"
    VISUAL_VERIFICATION = "VISUAL_VERIFICATION"
    DNA_FINALIZED = "DNA_FINALIZED"
    TEAM_MEMBER_INVITE = "TEAM_MEMBER_INVITE"
    TEAM_STRUCTURE = "TEAM_STRUCTURE"
    TEAM_PERMISSION_SET = "TEAM_PERMISSION_SET"
    CONTRACT = "CONTRACT"
    BUDGET = "BUDGET"
    MATERIAL = "MATERIAL"


class Citation(BaseModel):
    """Immutable record of one confirmed project fact."""

    model_config = ConfigDict(frozen=True)

    id: str
    sequence: int
    cite_type: CitationType
    question_key: str
    answer: str
    value: Any = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str
    source_message_id: Optional[str] = None


class CitationDraft(BaseModel):
    """A citation before the ledger assigns its id and sequence."""

    cite_type: CitationType
    question_key: str
    answer: str
    value: Any = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    source_message_id: Optional[str] = None


class LedgerResponse(BaseModel):
    """Current ledger for a project."""

    project_id: str
    version: int
    citations: List[Citation]


class CitationView(BaseModel):
    """Citation with its display string."""

    citation: Citation
    display: str


class AmendRequest(BaseModel):
    """Supersede a singleton citation with a new answer."""

    answer: str
    value: Any = None
    expected_version: int
