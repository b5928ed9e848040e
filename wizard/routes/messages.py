"""Wizard chat message routes."""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wizard.database import get_db
from wizard.models.message import ChatMessage
from wizard.routes.deps import service_errors
from wizard.schemas.project import MessageCreate, MessageResponse
from wizard.services.ledger import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/messages", tags=["messages"])


def _to_response(message: ChatMessage) -> MessageResponse:
    return MessageResponse(
        message_id=message.message_id,
        role=message.role,
        content=message.content,
        stage=message.stage,
        created_at=message.created_at.isoformat() if message.created_at else None,
    )


@router.post("", response_model=MessageResponse)
def post_message(
    project_id: uuid.UUID,
    data: MessageCreate,
    db: Session = Depends(get_db),
):
    """Store a chat turn; its message_id can be cited as a source."""
    with service_errors():
        LedgerService(db).get_summary(project_id)

    message = ChatMessage(
        project_id=project_id,
        role=data.role,
        content=data.content,
        stage=data.stage,
    )
    db.add(message)
    db.commit()
    return _to_response(message)


@router.get("", response_model=List[MessageResponse])
def list_messages(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """Chat history, oldest first."""
    messages = db.query(ChatMessage).filter(
        ChatMessage.project_id == project_id
    ).order_by(ChatMessage.created_at.asc()).all()
    return [_to_response(m) for m in messages]
