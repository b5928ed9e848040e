"""Shared route dependencies and service error mapping."""

import logging
import uuid
from contextlib import contextmanager
from typing import List, Optional

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from wizard.database import get_db
from wizard.schemas.citation import Citation
from wizard.services.geocoding import GeocodingClient
from wizard.services.ledger import LedgerConflictError, ProjectNotFoundError
from wizard.services.notifications import InvitationMailer
from wizard.services.review import citation_view
from wizard.services.storage import BlobStorage
from wizard.services.team import TeamService
from wizard.services.template_generator import TemplateGenerationError, TemplateGenerator
from wizard.services.wizard_flow import WizardService

logger = logging.getLogger(__name__)


def get_storage() -> BlobStorage:
    return BlobStorage()


def get_geocoder() -> GeocodingClient:
    return GeocodingClient()


def get_mailer() -> InvitationMailer:
    return InvitationMailer()


def get_generator() -> Optional[TemplateGenerator]:
    """None lets build_template create a generator only when AI is requested."""
    return None


def get_wizard(
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
    geocoder: GeocodingClient = Depends(get_geocoder),
    generator: Optional[TemplateGenerator] = Depends(get_generator),
) -> WizardService:
    return WizardService(db, storage=storage, geocoder=geocoder, generator=generator)


def get_team_service(
    db: Session = Depends(get_db),
    mailer: InvitationMailer = Depends(get_mailer),
) -> TeamService:
    return TeamService(db, mailer=mailer)


@contextmanager
def service_errors():
    """Translate service exceptions into HTTP errors."""
    try:
        yield
    except LedgerConflictError as e:
        logger.warning(str(e))
        raise HTTPException(
            status_code=409,
            detail={"message": "Ledger version conflict", "expected": e.expected, "actual": e.actual},
        )
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Not found: {e.args[0] if e.args else ''}")
    except TemplateGenerationError as e:
        logger.error(f"Template generation failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def written(wizard: WizardService, project_id: uuid.UUID, citations: List[Citation]) -> dict:
    """Response body for a ledger write."""
    _, version = wizard.ledger.get_ledger(project_id)
    return {
        "citations": [citation_view(c) for c in citations],
        "ledger_version": version,
    }
