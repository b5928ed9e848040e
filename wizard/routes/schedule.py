"""Schedule routes."""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wizard.database import get_db
from wizard.routes.deps import service_errors
from wizard.schemas.schedule import ScheduleResponse, ScheduleSaveResponse
from wizard.services.ledger import LedgerService
from wizard.services.timeline import (
    generate_phase_tasks,
    phase_costs,
    save_tasks,
    schedule_inputs_from_ledger,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/schedule", tags=["schedule"])


def _build_schedule(db: Session, project_id: uuid.UUID) -> ScheduleResponse:
    ledger_service = LedgerService(db)
    summary = ledger_service.get_summary(project_id)
    ledger, _ = ledger_service.get_ledger(project_id)
    start, end, has_demolition, items = schedule_inputs_from_ledger(ledger, summary)
    tasks = generate_phase_tasks(start, end, has_demolition, items)
    return ScheduleResponse(
        start_date=start,
        end_date=end,
        has_demolition=has_demolition,
        total_days=(end - start).days,
        tasks=tasks,
        phase_costs=phase_costs(tasks),
    )


@router.get("", response_model=ScheduleResponse)
def preview_schedule(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """Phase tasks derived from the current ledger."""
    with service_errors():
        return _build_schedule(db, project_id)


@router.post("", response_model=ScheduleSaveResponse)
def save_schedule(
    project_id: uuid.UUID,
    created_by: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Persist the derived tasks without duplicating earlier saves."""
    with service_errors():
        schedule = _build_schedule(db, project_id)
        inserted, mode = save_tasks(db, project_id, schedule.tasks, created_by)
    return ScheduleSaveResponse(inserted=inserted, mode=mode)
