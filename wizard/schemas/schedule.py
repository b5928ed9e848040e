"""Schedule (phase task) schemas."""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel


class PhaseTask(BaseModel):
    """A derived Gantt task."""

    id: str
    phase_id: str
    name: str
    priority: Literal["critical", "high", "medium", "low"]
    start_date: date
    end_date: date
    duration_days: int
    is_verification_node: bool = False
    verification_status: Literal["pending", "uploaded", "verified"] = "pending"
    is_sub_task: bool = False
    template_item_cost: Optional[float] = None
    template_item_category: Optional[Literal["material", "labor"]] = None


class ScheduleResponse(BaseModel):
    """Derived schedule for a project."""

    start_date: date
    end_date: date
    has_demolition: bool
    total_days: int
    tasks: List[PhaseTask]
    phase_costs: dict


class ScheduleSaveResponse(BaseModel):
    """Outcome of persisting the schedule."""

    inserted: int
    mode: Literal["all", "sub_tasks_only", "skipped"]
