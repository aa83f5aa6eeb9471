from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from .common import BoardRole, BoardVisibility, reject_null


class BoardBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    color: str = "bg-blue-600"
    visibility: BoardVisibility = BoardVisibility.WORKSPACE


class BoardCreate(BoardBase):
    workspace_id: UUID


class BoardUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    color: Optional[str] = None
    visibility: Optional[BoardVisibility] = None
    is_archived: Optional[bool] = None

    @field_validator("name", "color", "visibility", "is_archived")
    @classmethod
    def non_nullable(cls, value):
        return reject_null(value)


class BoardRead(BaseModel):
    id: UUID
    workspace_id: UUID
    owner_id: UUID
    name: str
    description: Optional[str] = None
    color: str
    # Stored value is returned as-is; rows may predate the current enum.
    visibility: str
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BoardMemberAdd(BaseModel):
    profile_id: UUID
    role: BoardRole = BoardRole.MEMBER


class BoardMemberRead(BaseModel):
    profile_id: UUID
    role: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    joined_at: datetime


class LabelCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    color: str = Field(..., min_length=1, max_length=50)


class LabelUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, min_length=1, max_length=50)

    @field_validator("color")
    @classmethod
    def non_nullable(cls, value):
        return reject_null(value)


class LabelRead(BaseModel):
    id: UUID
    board_id: UUID
    name: Optional[str] = None
    color: str

    model_config = {"from_attributes": True}
