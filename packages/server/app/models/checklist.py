"""Checklist models."""

import uuid

from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class Checklist(UUIDMixin, SQLModel, table=True):
    __tablename__ = "checklists"

    card_id: uuid.UUID = Field(
        foreign_key="cards.id", nullable=False, index=True, ondelete="CASCADE"
    )
    title: str = Field(nullable=False)
    position: int = Field(default=1, nullable=False)


class ChecklistItem(UUIDMixin, SQLModel, table=True):
    __tablename__ = "checklist_items"

    checklist_id: uuid.UUID = Field(
        foreign_key="checklists.id", nullable=False, index=True, ondelete="CASCADE"
    )
    content: str = Field(nullable=False)
    is_completed: bool = Field(default=False, nullable=False)
    position: int = Field(default=1, nullable=False)
