"""Kanban schema: profiles, workspaces, boards, lists, cards and card detail tables.

Revision ID: 0001_kanban_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_kanban_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)


def _ts(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.Text(), nullable=True, unique=True),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        _ts("created_at"),
    )

    op.create_table(
        "workspaces",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("owner_id", UUID, sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=False, server_default="{}"),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_workspaces_owner", "workspaces", ["owner_id"])

    op.create_table(
        "workspace_members",
        sa.Column("workspace_id", UUID, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("profile_id", UUID, sa.ForeignKey("profiles.id"), primary_key=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="member"),
        _ts("joined_at"),
        sa.CheckConstraint("role IN ('owner', 'admin', 'member')", name="ck_workspace_members_role"),
    )
    op.create_index("idx_workspace_members_profile", "workspace_members", ["profile_id"])

    op.create_table(
        "boards",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("workspace_id", UUID, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("owner_id", UUID, sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=False, server_default="bg-blue-600"),
        sa.Column("visibility", sa.Text(), nullable=False, server_default="workspace"),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_boards_workspace", "boards", ["workspace_id"])
    op.create_index("idx_boards_owner", "boards", ["owner_id"])

    op.create_table(
        "board_members",
        sa.Column("board_id", UUID, sa.ForeignKey("boards.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("profile_id", UUID, sa.ForeignKey("profiles.id"), primary_key=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="member"),
        _ts("joined_at"),
    )
    op.create_index("idx_board_members_profile", "board_members", ["profile_id"])

    op.create_table(
        "lists",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("board_id", UUID, sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="1"),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_lists_board_position", "lists", ["board_id", "position"])

    op.create_table(
        "cards",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("board_id", UUID, sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("list_id", UUID, sa.ForeignKey("lists.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("position", sa.Float(), nullable=False, server_default="1"),
        _ts("due_date", nullable=True),
        sa.Column("created_by", UUID, sa.ForeignKey("profiles.id"), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_cards_list_position", "cards", ["list_id", "position"])
    op.create_index("idx_cards_board", "cards", ["board_id"])

    op.create_table(
        "card_members",
        sa.Column("card_id", UUID, sa.ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("profile_id", UUID, sa.ForeignKey("profiles.id"), primary_key=True),
        sa.Column("assigned_by", UUID, sa.ForeignKey("profiles.id"), nullable=True),
        _ts("created_at"),
    )

    op.create_table(
        "labels",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("board_id", UUID, sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=False),
    )
    op.create_index("idx_labels_board", "labels", ["board_id"])

    op.create_table(
        "card_labels",
        sa.Column("card_id", UUID, sa.ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("label_id", UUID, sa.ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "comments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("card_id", UUID, sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("profile_id", UUID, sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_comments_card", "comments", ["card_id", "created_at"])

    op.create_table(
        "checklists",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("card_id", UUID, sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("idx_checklists_card", "checklists", ["card_id"])

    op.create_table(
        "checklist_items",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("checklist_id", UUID, sa.ForeignKey("checklists.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("position", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("idx_checklist_items_checklist", "checklist_items", ["checklist_id"])

    op.create_table(
        "activities",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("board_id", UUID, sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("card_id", UUID, sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=True),
        sa.Column("profile_id", UUID, sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("action_type", sa.Text(), nullable=False),
        sa.Column("action_data", sa.JSON(), nullable=False, server_default="{}"),
        _ts("created_at"),
    )
    op.create_index("idx_activities_card", "activities", ["card_id", "created_at"])
    op.create_index("idx_activities_board", "activities", ["board_id", "created_at"])


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in (
        "activities",
        "checklist_items",
        "checklists",
        "comments",
        "card_labels",
        "labels",
        "card_members",
        "cards",
        "lists",
        "board_members",
        "boards",
        "workspace_members",
        "workspaces",
        "profiles",
    ):
        op.drop_table(table)
