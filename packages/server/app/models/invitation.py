"""Pending workspace invitations, addressed by email and redeemed by token."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, timestamp_field


class Invitation(UUIDMixin, SQLModel, table=True):
    __tablename__ = "invitations"

    workspace_id: uuid.UUID = Field(
        foreign_key="workspaces.id", nullable=False, index=True, ondelete="CASCADE"
    )
    email: str = Field(nullable=False, index=True)
    role: str = Field(nullable=False, default="member")  # admin | member
    token: str = Field(nullable=False, unique=True)
    invited_by: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    accepted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    created_at: datetime = timestamp_field()
