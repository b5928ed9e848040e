"""Citation construction, ledger upsert and display formatting."""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from wizard.schemas.citation import Citation, CitationDraft, CitationType

logger = logging.getLogger(__name__)

# Types that accumulate instead of superseding earlier entries
MULTI_INSTANCE_TYPES = frozenset({
    CitationType.TEAM_MEMBER_INVITE,
    CitationType.BLUEPRINT_UPLOAD,
    CitationType.SITE_PHOTO,
    CitationType.CONTRACT,
    CitationType.VISUAL_VERIFICATION,
})

# Types whose value is a number that costs and schedules are computed from
NUMERIC_VALUE_TYPES = frozenset({
    CitationType.GFA_LOCK,
    CitationType.TEMPLATE_LOCK,
    CitationType.DEMOLITION_PRICE,
    CitationType.BUDGET,
    CitationType.MATERIAL,
    CitationType.DNA_FINALIZED,
})

# Legacy wizard element types -> citation types
LEGACY_ELEMENT_TYPES = {
    "project_label": CitationType.PROJECT_NAME,
    "map_location": CitationType.LOCATION,
    "wireframe": CitationType.GFA_LOCK,
    "template": CitationType.TEMPLATE_LOCK,
}

LEGACY_QUESTION_KEYS = {
    "project_name": CitationType.PROJECT_NAME,
    "project_address": CitationType.LOCATION,
    "work_type": CitationType.WORK_TYPE,
    "gfa": CitationType.GFA_LOCK,
}


def is_singleton(cite_type: CitationType) -> bool:
    """Whether at most one live citation of this type may exist."""
    return cite_type not in MULTI_INSTANCE_TYPES


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def create_citation(
    cite_type: CitationType,
    question_key: str,
    answer: str,
    value: Any = None,
    metadata: Optional[Dict[str, Any]] = None,
    sequence: int = 0,
    source_message_id: Optional[str] = None,
) -> Citation:
    """
    Create a new citation with a fresh identifier.

    Args:
        cite_type: Semantic type tag
        question_key: Logical question this answers
        answer: Human-readable rendering of the fact
        value: Raw value used for computation
        metadata: Type-specific detail
        sequence: Ledger sequence number (monotonic per project)
        source_message_id: Chat message the fact came from

    Returns:
        Frozen Citation
    """
    return Citation(
        id=f"cite_{sequence}_{uuid.uuid4().hex[:8]}",
        sequence=sequence,
        cite_type=cite_type,
        question_key=question_key,
        answer=answer,
        value=value,
        metadata=metadata or {},
        timestamp=datetime.now(timezone.utc).isoformat(),
        source_message_id=source_message_id,
    )


def from_draft(draft: CitationDraft, sequence: int) -> Citation:
    """Materialize a draft once the ledger has assigned its sequence."""
    return create_citation(
        cite_type=draft.cite_type,
        question_key=draft.question_key,
        answer=draft.answer,
        value=draft.value,
        metadata=draft.metadata,
        sequence=sequence,
        source_message_id=draft.source_message_id,
    )


def upsert_citation(ledger: List[Citation], citation: Citation) -> List[Citation]:
    """
    Add a citation to a ledger without mutating the input.

    Singleton types replace any earlier entry of the same type; multi-instance
    types are appended.
    """
    if is_singleton(citation.cite_type):
        kept = [c for c in ledger if c.cite_type != citation.cite_type]
    else:
        kept = list(ledger)
    kept.append(citation)
    return kept


def upsert_many(ledger: List[Citation], citations: Iterable[Citation]) -> List[Citation]:
    """Fold upsert_citation over several citations, in order."""
    result = list(ledger)
    for citation in citations:
        result = upsert_citation(result, citation)
    return result


def find_latest(ledger: List[Citation], cite_type: CitationType) -> Optional[Citation]:
    """Return the most recent citation of a type, if any."""
    for citation in reversed(ledger):
        if citation.cite_type == cite_type:
            return citation
    return None


def find_all(ledger: List[Citation], cite_type: CitationType) -> List[Citation]:
    """Return every citation of a type, in ledger order."""
    return [c for c in ledger if c.cite_type == cite_type]


def find_by_id(ledger: List[Citation], citation_id: str) -> Optional[Citation]:
    for citation in ledger:
        if citation.id == citation_id:
            return citation
    return None


def migrate_legacy_citation(item: Dict[str, Any], sequence: int) -> Optional[Citation]:
    """
    Convert a camelCase wizard entry into a typed citation.

    Entries whose type cannot be inferred are dropped.
    """
    question_key = str(item.get("questionKey") or item.get("question_key") or "")
    cite_type = LEGACY_ELEMENT_TYPES.get(item.get("elementType") or "") or LEGACY_QUESTION_KEYS.get(question_key)
    if cite_type is None:
        logger.warning(f"Dropping legacy citation with unknown type: {item.get('id')}")
        return None

    return Citation(
        id=str(item.get("id") or f"cite_{sequence}_legacy"),
        sequence=sequence,
        cite_type=cite_type,
        question_key=question_key,
        answer=str(item.get("answer") or ""),
        value=item.get("value", item.get("answer")),
        metadata=item.get("metadata") or {},
        timestamp=str(item.get("timestamp") or datetime.now(timezone.utc).isoformat()),
    )


def parse_ledger(raw: Optional[List[Any]]) -> List[Citation]:
    """Load stored ledger rows, migrating legacy entries."""
    if not isinstance(raw, list):
        return []

    citations = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        if "cite_type" in item and "question_key" in item:
            data = dict(item)
            data.setdefault("sequence", index + 1)
            citations.append(Citation(**data))
        else:
            migrated = migrate_legacy_citation(item, sequence=index + 1)
            if migrated:
                citations.append(migrated)
    return citations


def serialize_ledger(ledger: List[Citation]) -> List[Dict[str, Any]]:
    """Dump citations to JSON-compatible dicts for storage."""
    return [c.model_dump(mode="json") for c in ledger]


# Display formatting, dispatched per citation type

def _format_answer(citation: Citation) -> str:
    return citation.answer


def _format_date(raw: Any, fallback: str) -> str:
    if not isinstance(raw, str):
        return fallback
    try:
        parsed = date.fromisoformat(raw[:10])
    except ValueError:
        return raw
    return parsed.strftime("%b %d, %Y")


def _format_timeline(citation: Citation) -> str:
    return _format_date(citation.metadata.get("start_date"), citation.answer)


def _format_end_date(citation: Citation) -> str:
    return _format_date(citation.value, citation.answer)


def _format_gfa(citation: Citation) -> str:
    if isinstance(citation.value, (int, float)):
        unit = citation.metadata.get("gfa_unit") or "sq ft"
        if unit == "sqft":
            unit = "sq ft"
        return f"{citation.value:,.0f} {unit}"
    return citation.answer


def _format_demolition_price(citation: Citation) -> str:
    if isinstance(citation.value, (int, float)) and citation.value > 0:
        return f"${citation.value:.2f}/sq ft"
    return citation.answer


def _format_money(citation: Citation) -> str:
    if isinstance(citation.value, (int, float)):
        return f"${citation.value:,.2f} (pre-tax)"
    return citation.answer


def _format_location(citation: Citation) -> str:
    coordinates = citation.metadata.get("coordinates")
    if coordinates:
        return f"{citation.answer} ({coordinates['lat']:.4f}, {coordinates['lng']:.4f})"
    return citation.answer


CITATION_FORMATTERS: Dict[CitationType, Callable[[Citation], str]] = {
    CitationType.PROJECT_NAME: _format_answer,
    CitationType.LOCATION: _format_location,
    CitationType.WORK_TYPE: _format_answer,
    CitationType.GFA_LOCK: _format_gfa,
    CitationType.TRADE_SELECTION: _format_answer,
    CitationType.TEMPLATE_LOCK: _format_money,
    CitationType.TEAM_SIZE: _format_answer,
    CitationType.EXECUTION_MODE: _format_answer,
    CitationType.SITE_CONDITION: _format_answer,
    CitationType.DEMOLITION_PRICE: _format_demolition_price,
    CitationType.TIMELINE: _format_timeline,
    CitationType.END_DATE: _format_end_date,
    CitationType.BLUEPRINT_UPLOAD: _format_answer,
    CitationType.SITE_PHOTO: _format_answer,
    CitationType.VISUAL_VERIFICATION: _format_answer,
    CitationType.DNA_FINALIZED: _format_answer,
    CitationType.TEAM_MEMBER_INVITE: _format_answer,
    CitationType.TEAM_STRUCTURE: _format_answer,
    CitationType.TEAM_PERMISSION_SET: _format_answer,
    CitationType.CONTRACT: _format_answer,
    CitationType.BUDGET: _format_money,
    CitationType.MATERIAL: _format_answer,
}

_missing = set(CitationType) - set(CITATION_FORMATTERS)
if _missing:
    raise RuntimeError(f"No formatter for citation types: {sorted(t.value for t in _missing)}")


def format_citation(citation: Citation) -> str:
    """Human-readable display string for a citation."""
    return CITATION_FORMATTERS[citation.cite_type](citation)
