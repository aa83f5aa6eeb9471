"""Board label and card-label join models."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class Label(UUIDMixin, SQLModel, table=True):
    __tablename__ = "labels"

    board_id: uuid.UUID = Field(
        foreign_key="boards.id", nullable=False, index=True, ondelete="CASCADE"
    )
    name: Optional[str] = None
    color: str = Field(nullable=False)


class CardLabel(SQLModel, table=True):
    __tablename__ = "card_labels"

    card_id: uuid.UUID = Field(foreign_key="cards.id", primary_key=True, ondelete="CASCADE")
    label_id: uuid.UUID = Field(foreign_key="labels.id", primary_key=True, ondelete="CASCADE")
