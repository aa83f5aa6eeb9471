"""Card attachments and workspace invitations.

Revision ID: 0002_attachments_invitations
Revises: 0001_kanban_schema
Create Date: 2026-10-18 14:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0002_attachments_invitations"
down_revision: Union[str, None] = "0001_kanban_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)


def _ts(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def upgrade() -> None:
    op.create_table(
        "card_attachments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("card_id", UUID, sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("created_by", UUID, sa.ForeignKey("profiles.id"), nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_card_attachments_card", "card_attachments", ["card_id", "created_at"])

    op.create_table(
        "invitations",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "workspace_id", UUID, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False, server_default="member"),
        sa.Column("token", sa.Text(), nullable=False, unique=True),
        sa.Column("invited_by", UUID, sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _ts("accepted_at", nullable=True),
        _ts("created_at"),
    )
    op.create_index("idx_invitations_workspace", "invitations", ["workspace_id"])
    op.create_index("idx_invitations_email", "invitations", ["email"])


def downgrade() -> None:
    op.drop_table("invitations")
    op.drop_table("card_attachments")
