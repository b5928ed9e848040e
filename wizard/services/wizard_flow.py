"""Wizard stages: project basics, GFA lock, working template and project DNA."""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wizard.config import settings
from wizard.models.document import ProjectDocument
from wizard.models.project import Project, ProjectSummary
from wizard.schemas.citation import Citation, CitationDraft, CitationType
from wizard.schemas.project import Coordinates, FinalizeRequest, ProjectCreate
from wizard.schemas.template import CostBreakdown, ItemCreate, TemplateItem, TemplateState
from wizard.services import pricing
from wizard.services.citations import find_by_id, find_latest
from wizard.services.geocoding import GeocodingClient
from wizard.services.gfa import build_gfa_citation, parse_gfa_input
from wizard.services.ledger import LedgerService, ProjectNotFoundError
from wizard.services.storage import BlobStorage
from wizard.services.template_generator import TemplateGenerator, build_template
from wizard.services.templates import TEAM_SIZE_OPTIONS, WORK_TYPES, trade_label

logger = logging.getLogger(__name__)


def locked_gfa(ledger: List[Citation]) -> float:
    """GFA in square feet from the live GFA_LOCK citation."""
    citation = find_latest(ledger, CitationType.GFA_LOCK)
    if citation is None or not isinstance(citation.value, (int, float)):
        raise ValueError("GFA must be locked before working on the template")
    return float(citation.value)


class WizardService:
    """Runs the wizard stages against the ledger and the working template."""

    def __init__(
        self,
        db: Session,
        storage: Optional[BlobStorage] = None,
        geocoder: Optional[GeocodingClient] = None,
        generator: Optional[TemplateGenerator] = None,
    ):
        """Initialize with a session and optional collaborators."""
        self.db = db
        self.ledger = LedgerService(db)
        self.storage = storage or BlobStorage()
        self.geocoder = geocoder or GeocodingClient()
        self.generator = generator

    # Project basics

    def get_project(self, project_id: uuid.UUID) -> Project:
        project = self.db.query(Project).filter(Project.project_id == project_id).first()
        if not project:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return project

    def _location_draft(
        self,
        address: str,
        coordinates: Optional[Coordinates],
        geocode: bool,
        source_message_id: Optional[str],
    ) -> CitationDraft:
        coords = coordinates.model_dump() if coordinates else None
        if coords is None and geocode:
            coords = self.geocoder.geocode(address)
        return CitationDraft(
            cite_type=CitationType.LOCATION,
            question_key="project_address",
            answer=address,
            value=address,
            metadata={"address": address, "coordinates": coords},
            source_message_id=source_message_id,
        )

    def _work_type_draft(self, work_type: str, source_message_id: Optional[str]) -> CitationDraft:
        if work_type not in WORK_TYPES:
            raise ValueError(f"Unknown work type: {work_type}")
        return CitationDraft(
            cite_type=CitationType.WORK_TYPE,
            question_key="work_type",
            answer=WORK_TYPES[work_type],
            value=work_type,
            metadata={"work_type_key": work_type},
            source_message_id=source_message_id,
        )

    def create_project(self, data: ProjectCreate) -> Tuple[Project, int]:
        """Create a project and cite its name, location and work type."""
        name = data.name.strip()
        if not name:
            raise ValueError("Project name is required")

        drafts = [CitationDraft(
            cite_type=CitationType.PROJECT_NAME,
            question_key="project_name",
            answer=name,
            value=name,
            source_message_id=data.source_message_id,
        )]
        if data.address:
            drafts.append(self._location_draft(data.address, data.coordinates, True, data.source_message_id))
        if data.work_type:
            drafts.append(self._work_type_draft(data.work_type, data.source_message_id))

        project = Project(
            user_id=data.user_id,
            name=name,
            address=data.address,
            work_type=data.work_type,
            status="draft",
        )
        self.db.add(project)
        self.db.flush()

        self.db.add(ProjectSummary(
            project_id=project.project_id,
            user_id=data.user_id,
            verified_facts=[],
            ledger_version=0,
            next_sequence=1,
            template_items=[],
            waste_percent=settings.DEFAULT_WASTE_PERCENT,
            markup_percent=settings.DEFAULT_MARKUP_PERCENT,
            site_condition="clear",
        ))
        self.db.flush()

        _, version = self.ledger.append(project.project_id, drafts)
        logger.info(f"Created project {project.project_id} ({name})")
        return project, version

    def rename(self, project_id, name: str, expected_version=None, source_message_id=None) -> Citation:
        name = name.strip()
        if not name:
            raise ValueError("Project name is required")
        project = self.get_project(project_id)
        project.name = name
        created, _ = self.ledger.append(project_id, [CitationDraft(
            cite_type=CitationType.PROJECT_NAME,
            question_key="project_name",
            answer=name,
            value=name,
            source_message_id=source_message_id,
        )], expected_version=expected_version)
        return created[0]

    def set_location(self, project_id, address: str, coordinates=None, geocode=True,
                     expected_version=None, source_message_id=None) -> Citation:
        address = address.strip()
        if not address:
            raise ValueError("Address is required")
        project = self.get_project(project_id)
        draft = self._location_draft(address, coordinates, geocode, source_message_id)
        project.address = address
        created, _ = self.ledger.append(project_id, [draft], expected_version=expected_version)
        return created[0]

    def set_work_type(self, project_id, work_type: str, expected_version=None, source_message_id=None) -> Citation:
        project = self.get_project(project_id)
        draft = self._work_type_draft(work_type, source_message_id)
        project.work_type = work_type
        created, _ = self.ledger.append(project_id, [draft], expected_version=expected_version)
        return created[0]

    def lock_gfa(self, project_id, raw_input: str, expected_version=None, source_message_id=None) -> Citation:
        """Parse free-text area input and cite it as GFA_LOCK."""
        reading = parse_gfa_input(raw_input)
        if reading is None:
            raise ValueError(f"Could not read a positive area from '{raw_input}'")

        summary = self.ledger.get_summary(project_id)
        breakdown = self._breakdown(summary, self._items(summary), float(reading.sqft_value))
        created, _ = self.ledger.append(
            project_id,
            [build_gfa_citation(reading, raw_input, source_message_id)],
            expected_version=expected_version,
            summary_updates=self._cost_columns(breakdown),
        )
        return created[0]

    def amend_citation(self, project_id, citation_id: str, answer: str, value=None,
                       expected_version=None) -> Tuple[Citation, int]:
        """
        Supersede a citation with a corrected answer.

        GFA corrections are re-parsed like a fresh lock and recompute the
        stored cost columns; other types go straight to the ledger.
        """
        ledger, _ = self.ledger.get_ledger(project_id)
        original = find_by_id(ledger, citation_id)
        if original is None or original.cite_type != CitationType.GFA_LOCK:
            return self.ledger.amend(project_id, citation_id, answer, value, expected_version)

        raw_input = answer if value is None else str(value)
        reading = parse_gfa_input(raw_input)
        if reading is None:
            raise ValueError(f"Could not read a positive area from '{raw_input}'")

        draft = build_gfa_citation(reading, raw_input, original.source_message_id)
        draft.metadata["supersedes"] = original.id
        summary = self.ledger.get_summary(project_id)
        breakdown = self._breakdown(summary, self._items(summary), float(reading.sqft_value))
        created, version = self.ledger.append(
            project_id,
            [draft],
            expected_version=expected_version,
            summary_updates=self._cost_columns(breakdown),
        )
        logger.info(f"Amended GFA on project {project_id} to {reading.sqft_value} sq ft")
        return created[0], version

    # Working template

    def _items(self, summary: ProjectSummary) -> List[TemplateItem]:
        return [TemplateItem(**item) for item in (summary.template_items or [])]

    def _breakdown(self, summary: ProjectSummary, items: List[TemplateItem], gfa: float) -> CostBreakdown:
        return pricing.compute_breakdown(
            items,
            gfa_sqft=gfa,
            site_condition=summary.site_condition,
            markup_percent=summary.markup_percent,
            tax_region=settings.TAX_REGION,
            demolition_unit_price=settings.DEMOLITION_UNIT_PRICE,
        )

    def _cost_columns(self, breakdown: CostBreakdown) -> Dict:
        return {
            "material_cost": breakdown.material_total,
            "labor_cost": breakdown.labor_total,
            "total_cost": breakdown.net_total,
            "cost_breakdown": breakdown.model_dump(),
        }

    def _gfa_or_zero(self, project_id) -> float:
        ledger, _ = self.ledger.get_ledger(project_id)
        try:
            return locked_gfa(ledger)
        except ValueError:
            return 0.0

    def _save_template(self, project_id, summary: ProjectSummary, items: List[TemplateItem]) -> TemplateState:
        """Persist items and the recomputed rollup."""
        gfa = self._gfa_or_zero(project_id)
        breakdown = self._breakdown(summary, items, gfa)
        summary.template_items = [item.model_dump() for item in items]
        for column, value in self._cost_columns(breakdown).items():
            setattr(summary, column, value)
        self.db.commit()
        return self._state(project_id, summary, items, breakdown, gfa)

    def _state(self, project_id, summary, items, breakdown, gfa) -> TemplateState:
        return TemplateState(
            project_id=str(project_id),
            trade=summary.trade,
            waste_percent=summary.waste_percent,
            markup_percent=summary.markup_percent,
            site_condition=summary.site_condition,
            gfa_sqft=gfa,
            items=items,
            breakdown=breakdown,
        )

    def template_state(self, project_id) -> TemplateState:
        summary = self.ledger.get_summary(project_id)
        items = self._items(summary)
        gfa = self._gfa_or_zero(project_id)
        return self._state(project_id, summary, items, self._breakdown(summary, items, gfa), gfa)

    def start_template(self, project_id, trade: str, source: str = "table", allow_fallback: bool = True) -> TemplateState:
        """Generate the working template for a trade from the locked GFA."""
        project = self.get_project(project_id)
        ledger, _ = self.ledger.get_ledger(project_id)
        gfa = locked_gfa(ledger)
        summary = self.ledger.get_summary(project_id)

        base_items = build_template(
            trade,
            gfa,
            source=source,
            allow_fallback=allow_fallback,
            generator=self.generator,
            project_name=project.name,
            location=project.address,
            work_type=project.work_type,
        )
        summary.trade = trade
        items = pricing.apply_waste(base_items, summary.waste_percent)
        logger.info(f"Started {trade} template with {len(items)} items for project {project_id}")
        return self._save_template(project_id, summary, items)

    def add_item(self, project_id, data: ItemCreate) -> TemplateState:
        summary = self.ledger.get_summary(project_id)
        item = TemplateItem(
            id=pricing.new_item_id(),
            name=data.name,
            category=data.category,
            base_quantity=data.base_quantity,
            quantity=data.base_quantity,
            unit=data.unit,
            unit_price=data.unit_price,
            total_price=0,
            apply_waste=data.apply_waste,
        )
        items = pricing.add_item(self._items(summary), item, summary.waste_percent)
        return self._save_template(project_id, summary, items)

    def update_item(self, project_id, item_id: str, changes: Dict) -> TemplateState:
        summary = self.ledger.get_summary(project_id)
        items = pricing.update_item(self._items(summary), item_id, changes, summary.waste_percent)
        return self._save_template(project_id, summary, items)

    def delete_item(self, project_id, item_id: str) -> TemplateState:
        summary = self.ledger.get_summary(project_id)
        items = pricing.delete_item(self._items(summary), item_id)
        return self._save_template(project_id, summary, items)

    def set_waste(self, project_id, waste_percent: int) -> TemplateState:
        pricing.validate_waste_percent(waste_percent, settings.MAX_WASTE_PERCENT)
        summary = self.ledger.get_summary(project_id)
        summary.waste_percent = waste_percent
        items = pricing.apply_waste(self._items(summary), waste_percent)
        return self._save_template(project_id, summary, items)

    def set_markup(self, project_id, markup_percent: float) -> TemplateState:
        if markup_percent < 0:
            raise ValueError("Markup percent cannot be negative")
        summary = self.ledger.get_summary(project_id)
        summary.markup_percent = markup_percent
        return self._save_template(project_id, summary, self._items(summary))

    def set_site_condition(self, project_id, site_condition: str) -> TemplateState:
        if site_condition not in ("clear", "demolition"):
            raise ValueError(f"Unknown site condition: {site_condition}")
        summary = self.ledger.get_summary(project_id)
        summary.site_condition = site_condition
        return self._save_template(project_id, summary, self._items(summary))

    def lock_template(self, project_id, expected_version=None, source_message_id=None) -> List[Citation]:
        """
        Cite the trade, a snapshot of the template, the budget and the materials.

        TEMPLATE_LOCK.value is the pre-tax net total; the tax rate and gross
        total travel in metadata.
        """
        summary = self.ledger.get_summary(project_id)
        items = self._items(summary)
        if not items:
            raise ValueError("Add at least one item to the template")
        if not summary.trade:
            raise ValueError("Select a trade before locking the template")

        gfa = self._gfa_or_zero(project_id)
        breakdown = self._breakdown(summary, items, gfa)
        item_dicts = [item.model_dump() for item in items]
        materials = [item for item in item_dicts if item["category"] == "material"]

        drafts = [
            CitationDraft(
                cite_type=CitationType.TRADE_SELECTION,
                question_key="trade_selection",
                answer=trade_label(summary.trade),
                value=summary.trade,
                metadata={"trade_key": summary.trade},
                source_message_id=source_message_id,
            ),
            CitationDraft(
                cite_type=CitationType.TEMPLATE_LOCK,
                question_key="template_items",
                answer=f"{len(items)} items totaling ${breakdown.net_total:,.2f} before tax",
                value=breakdown.net_total,
                metadata={
                    "items": item_dicts,
                    "waste_percent": summary.waste_percent,
                    "material_total": breakdown.material_total,
                    "labor_total": breakdown.labor_total,
                    "demolition_cost": breakdown.demolition_cost,
                    "markup_percent": breakdown.markup_percent,
                    "markup_amount": breakdown.markup_amount,
                    "net_total": breakdown.net_total,
                    "tax_region": breakdown.tax_region,
                    "tax_rate": breakdown.tax_rate,
                    "tax_amount": breakdown.tax_amount,
                    "gross_total": breakdown.grand_total,
                },
                source_message_id=source_message_id,
            ),
            CitationDraft(
                cite_type=CitationType.BUDGET,
                question_key="budget",
                answer=f"${breakdown.net_total:,.2f} before tax",
                value=breakdown.net_total,
                metadata={
                    "subtotal": breakdown.subtotal,
                    "markup_amount": breakdown.markup_amount,
                    "tax_rate": breakdown.tax_rate,
                    "gross_total": breakdown.grand_total,
                },
                source_message_id=source_message_id,
            ),
            CitationDraft(
                cite_type=CitationType.MATERIAL,
                question_key="materials",
                answer=f"{len(materials)} materials totaling ${breakdown.material_total:,.2f}",
                value=breakdown.material_total,
                metadata={"materials": materials, "waste_percent": summary.waste_percent},
                source_message_id=source_message_id,
            ),
        ]
        created, _ = self.ledger.append(
            project_id,
            drafts,
            expected_version=expected_version,
            summary_updates=self._cost_columns(breakdown),
        )
        self._mirror_snapshot(project_id, created[1], item_dicts, breakdown)
        return created

    def _mirror_snapshot(self, project_id, citation: Citation, items: List[Dict], breakdown: CostBreakdown):
        """Store the locked template as a JSON document; failures are logged only."""
        filename = f"template_lock_{citation.sequence}.json"
        try:
            key = self.storage.save_json(project_id, filename, {
                "citation_id": citation.id,
                "locked_at": citation.timestamp,
                "items": items,
                "breakdown": breakdown.model_dump(),
            })
            self.db.add(ProjectDocument(
                project_id=project_id,
                kind="template_snapshot",
                file_name=filename,
                file_path=key,
                citation_id=citation.id,
            ))
            self.db.commit()
        except (OSError, SQLAlchemyError) as e:
            self.db.rollback()
            logger.error(f"Failed to mirror template snapshot for project {project_id}: {e}", exc_info=True)

    # Project DNA

    def set_team_size(self, project_id, team_size: str, expected_version=None) -> Citation:
        option = TEAM_SIZE_OPTIONS.get(team_size)
        if option is None:
            raise ValueError(f"Unknown team size: {team_size}")
        summary = self.ledger.get_summary(project_id)
        summary.team_size = team_size
        created, _ = self.ledger.append(project_id, [CitationDraft(
            cite_type=CitationType.TEAM_SIZE,
            question_key="team_size",
            answer=option["label"],
            value=team_size,
            metadata={"team_size_key": team_size, "description": option["description"]},
        )], expected_version=expected_version)
        return created[0]

    def finalize_dna(self, project_id, request: FinalizeRequest, today: Optional[date] = None) -> List[Citation]:
        """
        Cite site condition, timeline and the finalized project DNA.

        DNA_FINALIZED.value is the pre-tax net total. Re-finalizing a clear
        site supersedes any earlier demolition price with a zero-cost entry.

        Raises:
            ValueError: If the start date is missing or not before the end
                date, including an end date cited by an earlier finalize
        """
        project = self.get_project(project_id)
        summary = self.ledger.get_summary(project_id)
        ledger, _ = self.ledger.get_ledger(project_id)
        gfa = locked_gfa(ledger)
        items = self._items(summary)
        breakdown = self._breakdown(summary, items, gfa)
        today = today or date.today()

        if request.timeline == "scheduled":
            if request.scheduled_date is None:
                raise ValueError("A scheduled timeline needs a start date")
            start_date = request.scheduled_date
            timeline_answer = f"Scheduled: {start_date.strftime('%B %d, %Y')}"
        else:
            start_date = today
            timeline_answer = "ASAP"

        end_date = request.end_date
        if end_date is None:
            # A re-finalize without an end date keeps the cited one
            cited_end = find_latest(ledger, CitationType.END_DATE)
            if cited_end is not None:
                end_date = date.fromisoformat(str(cited_end.value)[:10])
        if end_date is not None and end_date <= start_date:
            raise ValueError(f"End date {end_date.isoformat()} must be after the start date {start_date.isoformat()}")

        demolition = summary.site_condition == "demolition"
        drafts = [CitationDraft(
            cite_type=CitationType.SITE_CONDITION,
            question_key="site_condition",
            answer="Demolition Needed" if demolition else "Clear Site",
            value=summary.site_condition,
            metadata={"demolition_required": demolition, "demolition_cost": breakdown.demolition_cost},
        )]
        if demolition:
            drafts.append(CitationDraft(
                cite_type=CitationType.DEMOLITION_PRICE,
                question_key="demolition_price",
                answer=f"${settings.DEMOLITION_UNIT_PRICE:.2f}/sq ft",
                value=settings.DEMOLITION_UNIT_PRICE,
                metadata={"gfa_sqft": gfa, "demolition_cost": breakdown.demolition_cost},
            ))
        elif find_latest(ledger, CitationType.DEMOLITION_PRICE) is not None:
            drafts.append(CitationDraft(
                cite_type=CitationType.DEMOLITION_PRICE,
                question_key="demolition_price",
                answer="Not required (clear site)",
                value=0.0,
                metadata={"gfa_sqft": gfa, "demolition_cost": 0.0},
            ))
        drafts.append(CitationDraft(
            cite_type=CitationType.TIMELINE,
            question_key="timeline",
            answer=timeline_answer,
            value=request.timeline,
            metadata={"start_date": start_date.isoformat()},
        ))
        if request.end_date is not None:
            drafts.append(CitationDraft(
                cite_type=CitationType.END_DATE,
                question_key="end_date",
                answer=request.end_date.strftime("%B %d, %Y"),
                value=request.end_date.isoformat(),
                metadata={"end_date": request.end_date.isoformat()},
            ))
        drafts.append(CitationDraft(
            cite_type=CitationType.DNA_FINALIZED,
            question_key="project_dna",
            answer=f"Project DNA Locked: {gfa:,.0f} sq ft | ${breakdown.net_total:,.2f} before tax",
            value=breakdown.net_total,
            metadata={
                "summary": {
                    "gfa": gfa,
                    "trade": summary.trade,
                    "team_size": summary.team_size,
                    "site_condition": summary.site_condition,
                    "timeline": request.timeline,
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat() if end_date else None,
                    "net_total": breakdown.net_total,
                    "tax_rate": breakdown.tax_rate,
                    "grand_total": breakdown.grand_total,
                },
                "finalized_at": datetime.now(timezone.utc).isoformat(),
                "template_items": [item.model_dump() for item in items],
                "breakdown": breakdown.model_dump(),
            },
        ))

        project.status = "active"
        created, _ = self.ledger.append(
            project_id,
            drafts,
            expected_version=request.expected_version,
            summary_updates=self._cost_columns(breakdown),
        )
        logger.info(f"Finalized DNA for project {project_id}")
        return created
