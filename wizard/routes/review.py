"""Final review and health routes."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wizard.database import get_db
from wizard.models.document import ProjectDocument
from wizard.routes.deps import service_errors
from wizard.schemas.project import HealthResponse, ReviewResponse
from wizard.services.ledger import LedgerService
from wizard.services.review import build_review, health_score
from wizard.services.team import team_member_count

router = APIRouter(prefix="/projects/{project_id}", tags=["review"])


@router.get("/review", response_model=ReviewResponse)
def get_review(
    project_id: uuid.UUID,
    role: str = "owner",
    db: Session = Depends(get_db),
):
    """Ledger grouped by wizard stage, filtered to what role may see."""
    with service_errors():
        ledger, _ = LedgerService(db).get_ledger(project_id)
        review = build_review(ledger, role)
    return ReviewResponse(project_id=project_id, **review)


@router.get("/health", response_model=HealthResponse)
def get_health(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """Weighted completeness score for the project."""
    with service_errors():
        ledger, _ = LedgerService(db).get_ledger(project_id)

    documents = db.query(ProjectDocument).filter(
        ProjectDocument.project_id == project_id,
        ProjectDocument.kind == "blueprint",
    ).count()
    contracts = db.query(ProjectDocument).filter(
        ProjectDocument.project_id == project_id,
        ProjectDocument.kind == "contract",
    ).count()

    return health_score(
        ledger,
        team_member_count=team_member_count(db, project_id),
        document_count=documents,
        contract_count=contracts,
    )
