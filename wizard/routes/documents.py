"""Project document routes."""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from sqlalchemy.orm import Session

from wizard.database import get_db
from wizard.models.document import ProjectDocument
from wizard.routes.deps import get_storage, service_errors
from wizard.schemas.citation import CitationDraft, CitationType
from wizard.services.citations import format_citation
from wizard.services.ledger import LedgerService
from wizard.services.storage import BlobStorage, safe_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/documents", tags=["documents"])

UPLOAD_KINDS = {
    "blueprint": (CitationType.BLUEPRINT_UPLOAD, "blueprint_upload"),
    "site_photo": (CitationType.SITE_PHOTO, "site_photo"),
    "contract": (CitationType.CONTRACT, "contract"),
    "verification": (CitationType.VISUAL_VERIFICATION, "visual_verification"),
}


@router.post("")
async def upload_document(
    project_id: uuid.UUID,
    file: UploadFile = File(...),
    kind: str = Form(...),
    uploaded_by: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
):
    """
    Store an uploaded file and cite it.

    Args:
        project_id: Project the file belongs to
        file: Uploaded file
        kind: blueprint, site_photo, contract or verification
        uploaded_by: Uploading user id

    Returns:
        Document id, storage key and the new citation
    """
    if kind not in UPLOAD_KINDS:
        raise HTTPException(status_code=400, detail=f"Unknown document kind: {kind}")
    cite_type, question_key = UPLOAD_KINDS[kind]

    try:
        original_name = safe_filename(file.filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    ledger_service = LedgerService(db)
    with service_errors():
        ledger_service.get_summary(project_id)

        file_name = f"{uuid.uuid4().hex[:8]}_{original_name}"
        key = storage.save(project_id, file_name, content)

        created, version = ledger_service.append(project_id, [CitationDraft(
            cite_type=cite_type,
            question_key=question_key,
            answer=original_name,
            value=key,
            metadata={
                "file_name": original_name,
                "file_path": key,
                "file_size": len(content),
                "content_type": file.content_type,
                "uploaded_by": uploaded_by,
            },
        )], commit=False)
    citation = created[0]

    document = ProjectDocument(
        project_id=project_id,
        kind=kind,
        file_name=original_name,
        file_path=key,
        file_size=len(content),
        citation_id=citation.id,
        uploaded_by=uploaded_by,
    )
    db.add(document)
    db.commit()

    logger.info(f"Uploaded {kind} {original_name} ({len(content)} bytes) to project {project_id}")

    return {
        "document_id": str(document.document_id),
        "file_path": key,
        "citation": citation.model_dump(mode="json"),
        "display": format_citation(citation),
        "ledger_version": version,
    }


@router.get("")
def list_documents(
    project_id: uuid.UUID,
    kind: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """List project documents, newest first."""
    query = db.query(ProjectDocument).filter(ProjectDocument.project_id == project_id)
    if kind:
        query = query.filter(ProjectDocument.kind == kind)
    documents = query.order_by(ProjectDocument.created_at.desc()).all()
    return [
        {
            "document_id": str(d.document_id),
            "kind": d.kind,
            "file_name": d.file_name,
            "file_path": d.file_path,
            "file_size": d.file_size,
            "citation_id": d.citation_id,
            "created_at": d.created_at.isoformat() if d.created_at else None,
        }
        for d in documents
    ]


@router.get("/{document_id}/content")
def download_document(
    project_id: uuid.UUID,
    document_id: uuid.UUID,
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
):
    """Raw bytes of a stored document."""
    document = db.query(ProjectDocument).filter(
        ProjectDocument.document_id == document_id,
        ProjectDocument.project_id == project_id,
    ).first()
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    try:
        data = storage.read(document.file_path)
    except FileNotFoundError:
        logger.error(f"Document {document_id} missing from storage at {document.file_path}")
        raise HTTPException(status_code=404, detail="Document content not found")

    return Response(content=data, media_type="application/octet-stream")
