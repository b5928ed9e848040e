"""Phase-based schedule derived from the project DNA."""

import logging
import math
import uuid
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from wizard.config import settings
from wizard.models.project import ProjectSummary
from wizard.models.task import ProjectTask
from wizard.schemas.citation import Citation, CitationType
from wizard.schemas.schedule import PhaseTask
from wizard.schemas.template import TemplateItem
from wizard.services.citations import find_latest

logger = logging.getLogger(__name__)

PHASE_KEYWORDS = [
    ("demolition", ("demolition", "demo", "removal")),
    ("preparation", ("prep", "primer", "underlayment", "tape", "compound", "mesh", "rebar", "forming")),
    ("finishing", ("finish", "baseboard", "trim", "transition", "touch", "qc")),
]

# duration_percent is the share of total project days
PHASE_DEFINITIONS = [
    {"id": "demolition", "name": "Demolition", "duration_percent": 15, "verification_label": "Site Clear Photo"},
    {"id": "preparation", "name": "Preparation", "duration_percent": 25, "verification_label": "Prep Complete Checklist"},
    {"id": "installation", "name": "Installation", "duration_percent": 45, "verification_label": "Progress Photos"},
    {"id": "finishing", "name": "Finishing & QC", "duration_percent": 15, "verification_label": "Final Inspection (OBC)"},
]

PHASE_NAMES = {phase["id"]: phase["name"] for phase in PHASE_DEFINITIONS}

SUB_TASK_PREFIX = "Template sub-task:"


def categorize_template_item(item: TemplateItem) -> str:
    """Assign an item to a phase by keywords in its name."""
    name = item.name.lower()
    for phase_id, keywords in PHASE_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return phase_id
    return "installation"


def _priority(index: int) -> str:
    if index == 0:
        return "critical"
    if index == 1:
        return "high"
    return "medium"


def generate_phase_tasks(
    start: date,
    end: date,
    has_demolition: bool,
    items: List[TemplateItem],
) -> List[PhaseTask]:
    """
    Lay phases end to end between start and end.

    Each phase gets a main task, one sub-task per template item assigned to
    it and a zero-length verification node at its end date. Phase lengths
    are max(1, share * total_days rounded half up), so the schedule can run
    past end on very short spans.

    Returns:
        Ordered tasks; empty when end is not after start
    """
    total_days = (end - start).days
    if total_days <= 0:
        return []

    phases = [p for p in PHASE_DEFINITIONS if has_demolition or p["id"] != "demolition"]
    total_percent = sum(p["duration_percent"] for p in phases)

    items_by_phase: Dict[str, List[TemplateItem]] = {}
    for item in items:
        items_by_phase.setdefault(categorize_template_item(item), []).append(item)

    tasks = []
    current = start
    for index, phase in enumerate(phases):
        share = phase["duration_percent"] / total_percent
        phase_days = max(1, int(math.floor(share * total_days + 0.5)))
        phase_end = current + timedelta(days=phase_days)

        tasks.append(PhaseTask(
            id=f"task_{phase['id']}_main",
            phase_id=phase["id"],
            name=f"{phase['name']} Work",
            priority=_priority(index),
            start_date=current,
            end_date=phase_end,
            duration_days=phase_days,
        ))

        for item in items_by_phase.get(phase["id"], []):
            tasks.append(PhaseTask(
                id=f"task_{phase['id']}_template_{item.id}",
                phase_id=phase["id"],
                name=item.name,
                priority="medium",
                start_date=current,
                end_date=phase_end,
                duration_days=phase_days,
                is_sub_task=True,
                template_item_cost=item.total_price,
                template_item_category=item.category,
            ))

        tasks.append(PhaseTask(
            id=f"task_{phase['id']}_verify",
            phase_id=phase["id"],
            name=phase["verification_label"],
            priority="critical",
            start_date=phase_end,
            end_date=phase_end,
            duration_days=0,
            is_verification_node=True,
        ))
        current = phase_end

    return tasks


def phase_costs(tasks: List[PhaseTask]) -> Dict[str, float]:
    """Sum of sub-task costs per phase."""
    costs: Dict[str, float] = {}
    for task in tasks:
        if task.is_sub_task:
            costs[task.phase_id] = round(costs.get(task.phase_id, 0.0) + (task.template_item_cost or 0.0), 2)
    return costs


def _synthetic_items(summary: ProjectSummary) -> List[TemplateItem]:
    """Lot items rebuilt from the stored cost columns."""
    items = []
    for item_id, name, category, amount in (
        ("synthetic_material", "Materials (from estimate)", "material", summary.material_cost or 0.0),
        ("synthetic_labor", "Labor (from estimate)", "labor", summary.labor_cost or 0.0),
    ):
        if amount > 0:
            items.append(TemplateItem(
                id=item_id,
                name=name,
                category=category,
                base_quantity=1,
                quantity=1,
                unit="lot",
                unit_price=amount,
                total_price=amount,
            ))
    return items


def schedule_inputs_from_ledger(
    ledger: List[Citation],
    summary: Optional[ProjectSummary],
    today: Optional[date] = None,
) -> Tuple[date, date, bool, List[TemplateItem]]:
    """
    Resolve schedule inputs from citations, then stored template data.

    Returns:
        (start, end, has_demolition, items)
    """
    today = today or date.today()

    start = today
    timeline = find_latest(ledger, CitationType.TIMELINE)
    if timeline and timeline.metadata.get("start_date"):
        start = date.fromisoformat(timeline.metadata["start_date"])

    end = start + timedelta(days=settings.DEFAULT_SCHEDULE_DAYS)
    end_date = find_latest(ledger, CitationType.END_DATE)
    if end_date and isinstance(end_date.value, str):
        end = date.fromisoformat(end_date.value)

    site = find_latest(ledger, CitationType.SITE_CONDITION)
    if site is not None:
        has_demolition = bool(site.metadata.get("demolition_required", site.value == "demolition"))
    else:
        has_demolition = bool(summary and summary.site_condition == "demolition")

    items: List[TemplateItem] = []
    template_lock = find_latest(ledger, CitationType.TEMPLATE_LOCK)
    if template_lock and template_lock.metadata.get("items"):
        items = [TemplateItem(**item) for item in template_lock.metadata["items"]]
    elif summary is not None:
        if summary.template_items:
            items = [TemplateItem(**item) for item in summary.template_items]
        elif (summary.total_cost or 0) > 0:
            items = _synthetic_items(summary)
            logger.info(f"Rebuilt {len(items)} synthetic items for project {summary.project_id}")

    return start, end, has_demolition, items


def _task_row(project_id: uuid.UUID, task: PhaseTask, created_by: Optional[str]) -> ProjectTask:
    phase_name = PHASE_NAMES.get(task.phase_id, task.phase_id)
    if task.is_verification_node:
        description = f"Verification checkpoint: {task.name}"
    elif task.is_sub_task:
        description = f"{SUB_TASK_PREFIX} {phase_name}"
    else:
        description = f"Phase: {phase_name}"

    return ProjectTask(
        project_id=project_id,
        phase_task_key=task.id,
        phase_id=task.phase_id,
        title=task.name,
        description=description,
        priority=task.priority,
        status="pending",
        assigned_to=created_by,
        start_date=task.start_date,
        due_date=task.end_date,
        is_sub_task=task.is_sub_task,
        is_verification_node=task.is_verification_node,
        total_cost=task.template_item_cost if task.is_sub_task else 0.0,
        created_by=created_by,
    )


def save_tasks(
    db: Session,
    project_id: uuid.UUID,
    tasks: List[PhaseTask],
    created_by: Optional[str] = None,
) -> Tuple[int, str]:
    """
    Persist tasks without duplicating earlier saves.

    No existing tasks: insert everything. Phase tasks but no sub-tasks:
    insert only the sub-tasks. Otherwise nothing is written.

    Returns:
        (rows inserted, mode)
    """
    existing = db.query(ProjectTask).filter(ProjectTask.project_id == project_id).all()
    has_sub_tasks = any(t.is_sub_task for t in existing)
    sub_tasks = [t for t in tasks if t.is_sub_task]

    if not existing:
        to_insert, mode = tasks, "all"
    elif not has_sub_tasks and sub_tasks:
        to_insert, mode = sub_tasks, "sub_tasks_only"
    else:
        logger.info(f"Tasks for project {project_id} already saved, skipping")
        return 0, "skipped"

    for task in to_insert:
        db.add(_task_row(project_id, task, created_by))
    db.commit()

    logger.info(f"Inserted {len(to_insert)} tasks for project {project_id} ({mode})")
    return len(to_insert), mode
