"""Project DNA routes."""

import uuid

from fastapi import APIRouter, Depends

from wizard.routes.deps import get_wizard, service_errors, written
from wizard.schemas.project import FinalizeRequest, TeamSizeRequest
from wizard.services.wizard_flow import WizardService

router = APIRouter(prefix="/projects/{project_id}/dna", tags=["dna"])


@router.put("/team-size")
def set_team_size(
    project_id: uuid.UUID,
    data: TeamSizeRequest,
    wizard: WizardService = Depends(get_wizard),
):
    with service_errors():
        citation = wizard.set_team_size(project_id, data.team_size, data.expected_version)
    return written(wizard, project_id, [citation])


@router.post("/finalize")
def finalize_dna(
    project_id: uuid.UUID,
    data: FinalizeRequest,
    wizard: WizardService = Depends(get_wizard),
):
    """Cite site condition, timeline and the finalized DNA; marks the project active."""
    with service_errors():
        citations = wizard.finalize_dna(project_id, data)
    return written(wizard, project_id, citations)
