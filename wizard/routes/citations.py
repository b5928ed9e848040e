"""Citation ledger routes."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from wizard.database import get_db
from wizard.models.message import ChatMessage
from wizard.routes.deps import get_wizard, service_errors
from wizard.schemas.citation import AmendRequest, CitationView, LedgerResponse
from wizard.schemas.project import MessageResponse
from wizard.services.citations import find_by_id, format_citation
from wizard.services.ledger import LedgerService
from wizard.services.wizard_flow import WizardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/citations", tags=["citations"])


@router.get("", response_model=LedgerResponse)
def list_citations(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """Current ledger in write order."""
    with service_errors():
        ledger, version = LedgerService(db).get_ledger(project_id)
    return LedgerResponse(project_id=str(project_id), version=version, citations=ledger)


@router.get("/{citation_id}", response_model=CitationView)
def get_citation(
    project_id: uuid.UUID,
    citation_id: str,
    db: Session = Depends(get_db),
):
    """One citation with its display string."""
    with service_errors():
        ledger, _ = LedgerService(db).get_ledger(project_id)
    citation = find_by_id(ledger, citation_id)
    if citation is None:
        raise HTTPException(status_code=404, detail="Citation not found")
    return CitationView(citation=citation, display=format_citation(citation))


@router.post("/{citation_id}/amend")
def amend_citation(
    project_id: uuid.UUID,
    citation_id: str,
    data: AmendRequest,
    wizard: WizardService = Depends(get_wizard),
):
    """Supersede a singleton citation with a corrected answer."""
    with service_errors():
        citation, version = wizard.amend_citation(
            project_id, citation_id, data.answer, data.value, data.expected_version
        )
    logger.info(f"Amended {citation_id} as {citation.id} on project {project_id}")
    return {
        "citation": citation.model_dump(mode="json"),
        "display": format_citation(citation),
        "ledger_version": version,
    }


@router.get("/{citation_id}/source", response_model=MessageResponse)
def get_citation_source(
    project_id: uuid.UUID,
    citation_id: str,
    db: Session = Depends(get_db),
):
    """Chat message a citation was recorded from."""
    with service_errors():
        ledger, _ = LedgerService(db).get_ledger(project_id)
    citation = find_by_id(ledger, citation_id)
    if citation is None:
        raise HTTPException(status_code=404, detail="Citation not found")
    if not citation.source_message_id:
        raise HTTPException(status_code=404, detail="Citation has no source message")

    try:
        message_id = uuid.UUID(citation.source_message_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Source message not found")

    message = db.query(ChatMessage).filter(
        ChatMessage.message_id == message_id,
        ChatMessage.project_id == project_id,
    ).first()
    if not message:
        raise HTTPException(status_code=404, detail="Source message not found")

    return MessageResponse(
        message_id=message.message_id,
        role=message.role,
        content=message.content,
        stage=message.stage,
        created_at=message.created_at.isoformat() if message.created_at else None,
    )
