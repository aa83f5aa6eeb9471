"""List (board column) model."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class BoardList(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "lists"

    board_id: uuid.UUID = Field(
        foreign_key="boards.id", nullable=False, index=True, ondelete="CASCADE"
    )
    name: str = Field(nullable=False)
    position: int = Field(default=1, nullable=False)
