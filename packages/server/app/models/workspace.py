"""Workspace and workspace membership models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, timestamp_field


class Workspace(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspaces"

    name: str = Field(nullable=False, index=True)
    description: Optional[str] = None
    owner_id: uuid.UUID = Field(foreign_key="profiles.id", nullable=False, index=True)
    # membership_restriction | board_creation_simplified | board_deletion_simplified
    settings: dict = Field(default_factory=dict, sa_type=sa.JSON, nullable=False)


class WorkspaceMember(SQLModel, table=True):
    __tablename__ = "workspace_members"

    workspace_id: uuid.UUID = Field(
        foreign_key="workspaces.id", primary_key=True, ondelete="CASCADE"
    )
    profile_id: uuid.UUID = Field(foreign_key="profiles.id", primary_key=True, index=True)
    role: str = Field(nullable=False, default="member")  # owner | admin | member
    joined_at: datetime = timestamp_field()
