"""Project routes: creation and the basic-information stages."""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wizard.database import get_db
from wizard.models.project import Project, ProjectSummary
from wizard.routes.deps import get_wizard, service_errors, written
from wizard.schemas.project import (
    GFARequest,
    LocationRequest,
    ProjectCreate,
    ProjectResponse,
    RenameRequest,
    WorkTypeRequest,
)
from wizard.services.wizard_flow import WizardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


def _project_response(project: Project, version: int) -> ProjectResponse:
    return ProjectResponse(
        project_id=project.project_id,
        name=project.name,
        address=project.address,
        work_type=project.work_type,
        status=project.status,
        ledger_version=version,
    )


@router.post("", response_model=ProjectResponse)
def create_project(
    data: ProjectCreate,
    wizard: WizardService = Depends(get_wizard),
):
    """Create a project and cite its basic information."""
    with service_errors():
        project, version = wizard.create_project(data)
    return _project_response(project, version)


@router.get("")
def list_projects(
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """List projects, newest first."""
    query = db.query(Project, ProjectSummary.ledger_version).outerjoin(
        ProjectSummary, ProjectSummary.project_id == Project.project_id
    )
    if user_id:
        query = query.filter(Project.user_id == user_id)
    rows = query.order_by(Project.created_at.desc()).all()
    return [
        {
            "project_id": str(p.project_id),
            "name": p.name,
            "status": p.status,
            "work_type": p.work_type,
            "ledger_version": version or 0,
            "created_at": p.created_at.isoformat() if p.created_at else None,
        }
        for p, version in rows
    ]


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: uuid.UUID,
    wizard: WizardService = Depends(get_wizard),
):
    """Get a project with its ledger version."""
    with service_errors():
        project = wizard.get_project(project_id)
        _, version = wizard.ledger.get_ledger(project_id)
    return _project_response(project, version)


@router.put("/{project_id}/name")
def rename_project(
    project_id: uuid.UUID,
    data: RenameRequest,
    wizard: WizardService = Depends(get_wizard),
):
    """Rename a project, superseding PROJECT_NAME."""
    with service_errors():
        citation = wizard.rename(project_id, data.name, data.expected_version, data.source_message_id)
    return written(wizard, project_id, [citation])


@router.put("/{project_id}/location")
def set_location(
    project_id: uuid.UUID,
    data: LocationRequest,
    wizard: WizardService = Depends(get_wizard),
):
    """Set the project address, geocoding it when no coordinates are given."""
    with service_errors():
        citation = wizard.set_location(
            project_id,
            data.address,
            coordinates=data.coordinates,
            geocode=data.geocode,
            expected_version=data.expected_version,
            source_message_id=data.source_message_id,
        )
    return written(wizard, project_id, [citation])


@router.put("/{project_id}/work-type")
def set_work_type(
    project_id: uuid.UUID,
    data: WorkTypeRequest,
    wizard: WizardService = Depends(get_wizard),
):
    """Set the work type."""
    with service_errors():
        citation = wizard.set_work_type(project_id, data.work_type, data.expected_version, data.source_message_id)
    return written(wizard, project_id, [citation])


@router.put("/{project_id}/gfa")
def lock_gfa(
    project_id: uuid.UUID,
    data: GFARequest,
    wizard: WizardService = Depends(get_wizard),
):
    """Lock the gross floor area from free-text input."""
    with service_errors():
        citation = wizard.lock_gfa(project_id, data.input, data.expected_version, data.source_message_id)
    return written(wizard, project_id, [citation])
