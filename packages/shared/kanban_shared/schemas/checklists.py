from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from uuid import UUID

from .common import reject_null


class ChecklistCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class ChecklistUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    position: Optional[int] = Field(None, ge=0)

    @field_validator("title", "position")
    @classmethod
    def non_nullable(cls, value):
        return reject_null(value)


class ChecklistItemCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)


class ChecklistItemUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1, max_length=1000)
    is_completed: Optional[bool] = None
    position: Optional[int] = Field(None, ge=0)

    @field_validator("content", "is_completed", "position")
    @classmethod
    def non_nullable(cls, value):
        return reject_null(value)


class ChecklistItemRead(BaseModel):
    id: UUID
    checklist_id: UUID
    content: str
    is_completed: bool
    position: int

    model_config = {"from_attributes": True}


class ChecklistRead(BaseModel):
    id: UUID
    card_id: UUID
    title: str
    position: int
    items: List[ChecklistItemRead] = []

    model_config = {"from_attributes": True}
