"""Working template routes."""

import logging
import uuid

from fastapi import APIRouter, Depends

from wizard.routes.deps import get_wizard, service_errors, written
from wizard.schemas.template import (
    ItemCreate,
    ItemUpdate,
    LockTemplateRequest,
    MarkupRequest,
    SiteConditionRequest,
    StartTemplateRequest,
    TemplateState,
    WasteRequest,
)
from wizard.services.wizard_flow import WizardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/template", tags=["template"])


@router.get("", response_model=TemplateState)
def get_template(
    project_id: uuid.UUID,
    wizard: WizardService = Depends(get_wizard),
):
    """Working template and its cost breakdown."""
    with service_errors():
        return wizard.template_state(project_id)


@router.post("/start", response_model=TemplateState)
def start_template(
    project_id: uuid.UUID,
    data: StartTemplateRequest,
    wizard: WizardService = Depends(get_wizard),
):
    """Generate the template for a trade from the locked GFA."""
    with service_errors():
        return wizard.start_template(project_id, data.trade, data.source, data.allow_fallback)


@router.post("/items", response_model=TemplateState)
def add_item(
    project_id: uuid.UUID,
    data: ItemCreate,
    wizard: WizardService = Depends(get_wizard),
):
    with service_errors():
        return wizard.add_item(project_id, data)


@router.patch("/items/{item_id}", response_model=TemplateState)
def update_item(
    project_id: uuid.UUID,
    item_id: str,
    data: ItemUpdate,
    wizard: WizardService = Depends(get_wizard),
):
    """Edit an item; unset fields are left alone."""
    with service_errors():
        return wizard.update_item(project_id, item_id, data.model_dump(exclude_unset=True))


@router.delete("/items/{item_id}", response_model=TemplateState)
def delete_item(
    project_id: uuid.UUID,
    item_id: str,
    wizard: WizardService = Depends(get_wizard),
):
    with service_errors():
        return wizard.delete_item(project_id, item_id)


@router.put("/waste", response_model=TemplateState)
def set_waste(
    project_id: uuid.UUID,
    data: WasteRequest,
    wizard: WizardService = Depends(get_wizard),
):
    """Re-apply waste to every waste-flagged material."""
    with service_errors():
        return wizard.set_waste(project_id, data.waste_percent)


@router.put("/markup", response_model=TemplateState)
def set_markup(
    project_id: uuid.UUID,
    data: MarkupRequest,
    wizard: WizardService = Depends(get_wizard),
):
    with service_errors():
        return wizard.set_markup(project_id, data.markup_percent)


@router.put("/site-condition", response_model=TemplateState)
def set_site_condition(
    project_id: uuid.UUID,
    data: SiteConditionRequest,
    wizard: WizardService = Depends(get_wizard),
):
    with service_errors():
        return wizard.set_site_condition(project_id, data.site_condition)


@router.post("/lock")
def lock_template(
    project_id: uuid.UUID,
    data: LockTemplateRequest,
    wizard: WizardService = Depends(get_wizard),
):
    """Cite the trade and the locked template."""
    with service_errors():
        citations = wizard.lock_template(project_id, data.expected_version, data.source_message_id)
    return written(wizard, project_id, citations)
