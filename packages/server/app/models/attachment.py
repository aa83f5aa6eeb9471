"""Card attachment model: a named link hanging off a card."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class CardAttachment(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "card_attachments"

    card_id: uuid.UUID = Field(
        foreign_key="cards.id", nullable=False, index=True, ondelete="CASCADE"
    )
    filename: str = Field(nullable=False)
    file_url: str = Field(nullable=False)
    created_by: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)
