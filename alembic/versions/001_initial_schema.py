"""Initial project wizard schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    # Check if tables already exist and skip if so
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "projects" in existing_tables:
        return

    # Create projects table
    op.create_table(
        "projects",
        sa.Column("project_id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("address", sa.Text),
        sa.Column("work_type", sa.Text),
        sa.Column("status", sa.Text, nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_projects_user_id", "projects", ["user_id"])

    # Create project_summaries table (ledger + working template)
    op.create_table(
        "project_summaries",
        sa.Column("summary_pk", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Uuid, sa.ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("verified_facts", JSONType, nullable=False),
        sa.Column("ledger_version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("next_sequence", sa.Integer, nullable=False, server_default="1"),
        sa.Column("trade", sa.Text),
        sa.Column("template_items", JSONType),
        sa.Column("waste_percent", sa.Integer, nullable=False, server_default="10"),
        sa.Column("markup_percent", sa.Float, nullable=False, server_default="0"),
        sa.Column("site_condition", sa.Text, nullable=False, server_default="clear"),
        sa.Column("team_size", sa.Text),
        sa.Column("material_cost", sa.Float),
        sa.Column("labor_cost", sa.Float),
        sa.Column("total_cost", sa.Float),
        sa.Column("cost_breakdown", JSONType),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create project_tasks table
    op.create_table(
        "project_tasks",
        sa.Column("task_pk", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("task_id", sa.Uuid, nullable=False, unique=True),
        sa.Column("project_id", sa.Uuid, sa.ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False),
        sa.Column("phase_task_key", sa.Text, nullable=False),
        sa.Column("phase_id", sa.Text, nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("priority", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("assigned_to", sa.Text),
        sa.Column("start_date", sa.Date),
        sa.Column("due_date", sa.Date),
        sa.Column("is_sub_task", sa.Boolean, server_default=sa.false()),
        sa.Column("is_verification_node", sa.Boolean, server_default=sa.false()),
        sa.Column("total_cost", sa.Float),
        sa.Column("created_by", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_project_tasks_project_id", "project_tasks", ["project_id"])

    # Create team_invitations table
    op.create_table(
        "team_invitations",
        sa.Column("invitation_id", sa.Uuid, primary_key=True),
        sa.Column("project_id", sa.Uuid, sa.ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False),
        sa.Column("email", sa.Text, nullable=False),
        sa.Column("invited_by", sa.Text, nullable=False),
        sa.Column("role", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Create project_members table
    op.create_table(
        "project_members",
        sa.Column("member_pk", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Uuid, sa.ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("role", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint("project_id", "user_id"),
    )

    # Create project_documents table
    op.create_table(
        "project_documents",
        sa.Column("document_id", sa.Uuid, primary_key=True),
        sa.Column("project_id", sa.Uuid, sa.ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.Text, nullable=False),
        sa.Column("file_name", sa.Text, nullable=False),
        sa.Column("file_path", sa.Text, nullable=False),
        sa.Column("file_size", sa.Integer),
        sa.Column("citation_id", sa.Text),
        sa.Column("uploaded_by", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_project_documents_project_id", "project_documents", ["project_id"])

    # Create chat_messages table
    op.create_table(
        "chat_messages",
        sa.Column("message_id", sa.Uuid, primary_key=True),
        sa.Column("project_id", sa.Uuid, sa.ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.Text, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("stage", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_chat_messages_project_id", "chat_messages", ["project_id"])


def downgrade() -> None:
    op.drop_table("chat_messages")
    op.drop_table("project_documents")
    op.drop_table("project_members")
    op.drop_table("team_invitations")
    op.drop_table("project_tasks")
    op.drop_table("project_summaries")
    op.drop_table("projects")
