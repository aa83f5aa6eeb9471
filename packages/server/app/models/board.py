"""Board and board membership models."""

from datetime import datetime
from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, timestamp_field


class Board(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "boards"

    workspace_id: uuid.UUID = Field(
        foreign_key="workspaces.id", nullable=False, index=True, ondelete="CASCADE"
    )
    owner_id: uuid.UUID = Field(foreign_key="profiles.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    description: Optional[str] = None
    color: str = Field(default="bg-blue-600", nullable=False)
    visibility: str = Field(default="workspace", nullable=False)  # private | workspace | public
    is_archived: bool = Field(default=False, nullable=False)


class BoardMember(SQLModel, table=True):
    __tablename__ = "board_members"

    board_id: uuid.UUID = Field(foreign_key="boards.id", primary_key=True, ondelete="CASCADE")
    profile_id: uuid.UUID = Field(foreign_key="profiles.id", primary_key=True, index=True)
    role: str = Field(nullable=False, default="member")  # owner | admin | member
    joined_at: datetime = timestamp_field()
