"""Card and card membership models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, timestamp_field


class Card(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "cards"

    board_id: uuid.UUID = Field(
        foreign_key="boards.id", nullable=False, index=True, ondelete="CASCADE"
    )
    list_id: uuid.UUID = Field(
        foreign_key="lists.id", nullable=False, index=True, ondelete="CASCADE"
    )
    title: str = Field(nullable=False)
    description: Optional[str] = None
    position: float = Field(default=1.0, nullable=False)
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="profiles.id")


class CardMember(SQLModel, table=True):
    __tablename__ = "card_members"

    card_id: uuid.UUID = Field(foreign_key="cards.id", primary_key=True, ondelete="CASCADE")
    profile_id: uuid.UUID = Field(foreign_key="profiles.id", primary_key=True, index=True)
    assigned_by: Optional[uuid.UUID] = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = timestamp_field()
