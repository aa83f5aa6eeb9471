from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime

from .cards import CardRead
from .common import reject_null


class ListCreate(BaseModel):
    board_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    position: Optional[int] = Field(None, ge=0)


class ListUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    position: Optional[int] = Field(None, ge=0)

    @field_validator("name", "position")
    @classmethod
    def non_nullable(cls, value):
        return reject_null(value)


class ListRead(BaseModel):
    id: UUID
    board_id: UUID
    name: str
    position: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ListWithCards(ListRead):
    cards: List[CardRead] = []
