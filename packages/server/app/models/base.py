"""Shared columns for the kanban tables."""

from datetime import datetime, timezone
from typing import Any
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def timestamp_field(*, index: bool = False, onupdate: bool = False) -> Any:
    """Timezone-aware timestamp, filled in by Python on insert and by the database otherwise."""
    column_kwargs: dict[str, Any] = {"server_default": sa.func.now()}
    if onupdate:
        column_kwargs["onupdate"] = utcnow
    return Field(
        default_factory=utcnow,
        nullable=False,
        index=index,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs=column_kwargs,
    )


class UUIDMixin(SQLModel):
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
        nullable=False,
    )


class TimestampMixin(SQLModel):
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field(onupdate=True)

    def touch(self) -> None:
        """Mark the row as modified now."""
        self.updated_at = utcnow()


def as_utc(value: datetime) -> datetime:
    """Naive timestamps read back from the store are UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
