"""Card comment model."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Comment(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "comments"

    card_id: uuid.UUID = Field(
        foreign_key="cards.id", nullable=False, index=True, ondelete="CASCADE"
    )
    profile_id: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)
    content: str = Field(nullable=False)
    is_edited: bool = Field(default=False, nullable=False)
