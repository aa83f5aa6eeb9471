"""Profile model (one row per identity known to the identity provider)."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .base import UUIDMixin, timestamp_field


class Profile(UUIDMixin, SQLModel, table=True):
    __tablename__ = "profiles"

    email: Optional[str] = Field(default=None, unique=True, index=True)
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime = timestamp_field()
