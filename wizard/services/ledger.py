"""Versioned citation ledger persisted on project_summaries."""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from wizard.models.project import Project, ProjectSummary
from wizard.schemas.citation import Citation, CitationDraft
from wizard.services.citations import (
    NUMERIC_VALUE_TYPES,
    find_by_id,
    from_draft,
    is_number,
    is_singleton,
    parse_ledger,
    serialize_ledger,
    upsert_many,
)

logger = logging.getLogger(__name__)


class ProjectNotFoundError(Exception):
    """Raised when a project does not exist."""


class LedgerConflictError(Exception):
    """Raised when a write was based on a stale ledger version."""

    def __init__(self, project_id, expected: Optional[int], actual: int):
        self.project_id = project_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Ledger for project {project_id} is at version {actual}, write expected {expected}"
        )


class LedgerService:
    """Read and write a project's citation ledger with optimistic concurrency."""

    def __init__(self, db: Session):
        """Initialize with a database session."""
        self.db = db

    def get_summary(self, project_id: uuid.UUID) -> ProjectSummary:
        """Load the summary row, creating it for projects that predate it."""
        summary = self.db.query(ProjectSummary).filter(ProjectSummary.project_id == project_id).first()
        if summary:
            return summary

        project = self.db.query(Project).filter(Project.project_id == project_id).first()
        if not project:
            raise ProjectNotFoundError(f"Project {project_id} not found")

        summary = ProjectSummary(
            project_id=project_id,
            user_id=project.user_id,
            verified_facts=[],
            ledger_version=0,
            next_sequence=1,
        )
        self.db.add(summary)
        self.db.flush()
        logger.info(f"Created summary row for project {project_id}")
        return summary

    def get_ledger(self, project_id: uuid.UUID) -> Tuple[List[Citation], int]:
        """Return the parsed ledger and its version."""
        summary = self.get_summary(project_id)
        return parse_ledger(summary.verified_facts), summary.ledger_version

    def append(
        self,
        project_id: uuid.UUID,
        drafts: Sequence[CitationDraft],
        expected_version: Optional[int] = None,
        summary_updates: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> Tuple[List[Citation], int]:
        """
        Upsert citations into the ledger as one versioned write.

        Args:
            project_id: Project to write to
            drafts: Citations to add, in order
            expected_version: Version the caller read; None skips the caller check
            summary_updates: Extra summary columns written in the same statement
            commit: Commit the session after writing

        Returns:
            (created citations, new ledger version)

        Raises:
            LedgerConflictError: If the ledger moved since expected_version
        """
        summary = self.get_summary(project_id)
        self.db.flush()

        current_version = summary.ledger_version
        if expected_version is not None and expected_version != current_version:
            self.db.rollback()
            raise LedgerConflictError(project_id, expected_version, current_version)

        ledger = parse_ledger(summary.verified_facts)
        sequence = summary.next_sequence
        created = []
        for draft in drafts:
            created.append(from_draft(draft, sequence))
            sequence += 1

        new_ledger = upsert_many(ledger, created)
        values = {
            "verified_facts": serialize_ledger(new_ledger),
            "ledger_version": current_version + 1,
            "next_sequence": sequence,
        }
        if summary_updates:
            values.update(summary_updates)

        # Compare-and-set on the version we just read
        result = self.db.execute(
            update(ProjectSummary)
            .where(
                ProjectSummary.project_id == project_id,
                ProjectSummary.ledger_version == current_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            latest = self.db.query(ProjectSummary.ledger_version).filter(
                ProjectSummary.project_id == project_id
            ).scalar()
            raise LedgerConflictError(project_id, current_version, latest)

        self.db.expire(summary)
        if commit:
            self.db.commit()

        logger.info(
            f"Appended {len(created)} citation(s) to project {project_id}, "
            f"version {current_version} -> {current_version + 1}"
        )
        return created, current_version + 1

    def amend(
        self,
        project_id: uuid.UUID,
        citation_id: str,
        answer: str,
        value: Any,
        expected_version: int,
    ) -> Tuple[Citation, int]:
        """
        Supersede a singleton citation with a corrected answer.

        Without a new value, text facts take the new answer as their value and
        every other citation keeps its original value.

        Raises:
            KeyError: If the citation is not in the ledger
            ValueError: If the citation is multi-instance, or a numeric
                citation is given a non-numeric value
        """
        ledger, _ = self.get_ledger(project_id)
        original = find_by_id(ledger, citation_id)
        if original is None:
            raise KeyError(citation_id)
        if not is_singleton(original.cite_type):
            raise ValueError(f"{original.cite_type.value} citations cannot be amended")

        if value is None:
            value = answer if original.value == original.answer else original.value
        if original.cite_type in NUMERIC_VALUE_TYPES and not is_number(value):
            raise ValueError(f"{original.cite_type.value} needs a numeric value, got {value!r}")

        metadata = dict(original.metadata)
        metadata["supersedes"] = original.id
        draft = CitationDraft(
            cite_type=original.cite_type,
            question_key=original.question_key,
            answer=answer,
            value=value,
            metadata=metadata,
            source_message_id=original.source_message_id,
        )
        created, version = self.append(project_id, [draft], expected_version=expected_version)
        return created[0], version
