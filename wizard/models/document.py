"""Project document model."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, Uuid

from wizard.database import Base


class ProjectDocument(Base):
    """Uploaded file or generated snapshot stored in blob storage."""

    __tablename__ = "project_documents"

    document_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    kind = Column(Text, nullable=False)  # 'blueprint', 'site_photo', 'contract', 'verification', 'template_snapshot'
    file_name = Column(Text, nullable=False)
    file_path = Column(Text, nullable=False)  # '{project_id}/{file_name}'
    file_size = Column(Integer)
    citation_id = Column(Text)
    uploaded_by = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
