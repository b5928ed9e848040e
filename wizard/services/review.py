"""Role-filtered final review and project health score."""

import math
from typing import Dict, List

from wizard.schemas.citation import Citation, CitationType
from wizard.schemas.project import HealthResponse, ReviewSection
from wizard.services.citations import format_citation

VISIBILITY_TIERS = {"owner": 4, "foreman": 3, "worker": 2, "public": 1}

ROLE_TIERS = {
    "owner": "owner",
    "foreman": "foreman",
    "worker": "worker",
    "inspector": "worker",
    "subcontractor": "worker",
    "member": "public",
}

STAGE_SECTIONS = [
    {
        "id": "stage-1",
        "stage_number": 1,
        "title": "Basic Information",
        "visibility_tier": "public",
        "types": [CitationType.PROJECT_NAME, CitationType.LOCATION, CitationType.WORK_TYPE],
    },
    {
        "id": "stage-2",
        "stage_number": 2,
        "title": "Area Lock (GFA)",
        "visibility_tier": "foreman",
        "types": [CitationType.GFA_LOCK, CitationType.BLUEPRINT_UPLOAD],
    },
    {
        "id": "stage-3",
        "stage_number": 3,
        "title": "Trade & Template",
        "visibility_tier": "foreman",
        "types": [CitationType.TRADE_SELECTION, CitationType.TEMPLATE_LOCK],
    },
    {
        "id": "stage-4",
        "stage_number": 4,
        "title": "Execution Flow",
        "visibility_tier": "foreman",
        "types": [
            CitationType.EXECUTION_MODE,
            CitationType.SITE_CONDITION,
            CitationType.DEMOLITION_PRICE,
            CitationType.TEAM_SIZE,
            CitationType.TIMELINE,
            CitationType.END_DATE,
        ],
    },
    {
        "id": "stage-5",
        "stage_number": 5,
        "title": "Visual Intelligence",
        "visibility_tier": "worker",
        "types": [CitationType.BLUEPRINT_UPLOAD, CitationType.SITE_PHOTO, CitationType.VISUAL_VERIFICATION],
    },
    {
        "id": "stage-6",
        "stage_number": 6,
        "title": "Team Architecture",
        "visibility_tier": "foreman",
        "types": [CitationType.TEAM_STRUCTURE, CitationType.TEAM_MEMBER_INVITE, CitationType.TEAM_PERMISSION_SET],
    },
    {
        "id": "stage-7",
        "stage_number": 7,
        "title": "Execution Timeline",
        "visibility_tier": "worker",
        "types": [CitationType.TIMELINE, CitationType.END_DATE, CitationType.DNA_FINALIZED],
    },
    {
        "id": "financial",
        "stage_number": 0,
        "title": "Financial Summary",
        "visibility_tier": "owner",
        "types": [CitationType.BUDGET, CitationType.MATERIAL, CitationType.DEMOLITION_PRICE],
    },
]

# (pillar id, citation type, weight, required in solo mode)
HEALTH_PILLARS = [
    ("project_name", CitationType.PROJECT_NAME, 1.0, True),
    ("location", CitationType.LOCATION, 1.0, True),
    ("work_type", CitationType.WORK_TYPE, 1.0, True),
    ("gfa_lock", CitationType.GFA_LOCK, 1.5, True),
    ("trade_selection", CitationType.TRADE_SELECTION, 1.0, True),
    ("template_lock", CitationType.TEMPLATE_LOCK, 1.5, True),
    ("site_condition", CitationType.SITE_CONDITION, 1.0, True),
    ("timeline", CitationType.TIMELINE, 1.0, True),
    ("end_date", CitationType.END_DATE, 1.0, True),
    ("dna_finalized", CitationType.DNA_FINALIZED, 1.0, True),
    ("budget", CitationType.BUDGET, 1.5, True),
    ("material", CitationType.MATERIAL, 1.0, True),
    ("demolition_price", CitationType.DEMOLITION_PRICE, 0.5, True),
    ("documents", CitationType.BLUEPRINT_UPLOAD, 1.0, False),
    ("contracts", CitationType.CONTRACT, 1.0, False),
    ("team", CitationType.TEAM_STRUCTURE, 1.0, False),
]

HEALTH_STATUSES = [
    (90, "excellent", "Excellent"),
    (70, "good", "Good"),
    (40, "needs-attention", "Needs Attention"),
    (0, "critical", "Critical"),
]


def role_tier(role: str) -> str:
    """Visibility tier for a project role. Raises ValueError for unknown roles."""
    tier = ROLE_TIERS.get(role.lower())
    if tier is None:
        raise ValueError(f"Unknown role: {role}")
    return tier


def citation_view(citation: Citation) -> Dict:
    data = citation.model_dump(mode="json")
    data["display"] = format_citation(citation)
    return data


def build_review(ledger: List[Citation], role: str) -> Dict:
    """
    Group the ledger into stage sections visible to role.

    Sections above the role's tier are returned restricted and empty so the
    client can still show them as locked.
    """
    tier = role_tier(role)
    level = VISIBILITY_TIERS[tier]

    sections = []
    for section in STAGE_SECTIONS:
        restricted = VISIBILITY_TIERS[section["visibility_tier"]] > level
        citations = []
        if not restricted:
            citations = [citation_view(c) for c in ledger if c.cite_type in section["types"]]
        sections.append(ReviewSection(
            id=section["id"],
            stage_number=section["stage_number"],
            title=section["title"],
            visibility_tier=section["visibility_tier"],
            restricted=restricted,
            citations=citations,
        ))

    return {
        "role": tier,
        "can_edit": tier in ("owner", "foreman"),
        "can_view_financials": tier == "owner",
        "sections": sections,
    }


def health_score(
    ledger: List[Citation],
    team_member_count: int,
    document_count: int = 0,
    contract_count: int = 0,
) -> HealthResponse:
    """
    Weighted completion score over the data pillars.

    With no team members the project is in solo mode and the team-only
    pillars (documents, contracts, team) are left out of the total.
    """
    solo = team_member_count == 0
    present = {c.cite_type for c in ledger}
    extra_evidence = {
        "documents": document_count > 0,
        "contracts": contract_count > 0,
        "team": team_member_count > 0,
    }

    completed, missing = [], []
    total_weight = 0.0
    completed_weight = 0.0
    for pillar_id, cite_type, weight, solo_required in HEALTH_PILLARS:
        if solo and not solo_required:
            continue
        total_weight += weight
        if cite_type in present or extra_evidence.get(pillar_id, False):
            completed.append(pillar_id)
            completed_weight += weight
        else:
            missing.append(pillar_id)

    score = int(math.floor(completed_weight / total_weight * 100 + 0.5)) if total_weight else 0
    for threshold, status, label in HEALTH_STATUSES:
        if score >= threshold:
            break

    return HealthResponse(
        score=score,
        completed_count=len(completed),
        total_count=len(completed) + len(missing),
        completed_pillars=completed,
        missing_pillars=missing,
        is_solo_mode=solo,
        health_status=status,
        status_label=label,
    )
