"""Activity model (append-only card/board history)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import timestamp_field


class Activity(SQLModel, table=True):
    __tablename__ = "activities"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    board_id: uuid.UUID = Field(
        foreign_key="boards.id", nullable=False, index=True, ondelete="CASCADE"
    )
    card_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="cards.id", index=True, ondelete="CASCADE"
    )
    profile_id: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)
    action_type: str = Field(nullable=False)  # card_created | card_moved | member_added | ...
    action_data: dict = Field(default_factory=dict, sa_type=sa.JSON, nullable=False)
    created_at: datetime = timestamp_field(index=True)
