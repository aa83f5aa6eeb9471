from enum import Enum
from typing import Optional, List, Sequence
from urllib.parse import urlsplit
from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime

from .common import reject_null


class CardCreate(BaseModel):
    list_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    position: Optional[float] = Field(None, gt=0)
    due_date: Optional[datetime] = None


class CardUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def non_nullable(cls, value):
        return reject_null(value)


class CardRead(BaseModel):
    id: UUID
    board_id: UUID
    list_id: UUID
    title: str
    description: Optional[str] = None
    position: float
    due_date: Optional[datetime] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CardMove(BaseModel):
    list_id: UUID
    # 1-based slot in the target list; 0 is accepted as "top" for drag-and-drop clients.
    position: float = Field(..., ge=0)


class CardMoveResult(BaseModel):
    id: UUID
    list_id: UUID
    position: float
    old_list_id: UUID
    old_position: float
    moved: bool


class CardMemberAdd(BaseModel):
    profile_id: UUID


class CardMemberRead(BaseModel):
    profile_id: UUID
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime


class CardLabelAdd(BaseModel):
    label_id: UUID


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class CommentRead(BaseModel):
    id: UUID
    card_id: UUID
    profile_id: UUID
    content: str
    is_edited: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ActivityRead(BaseModel):
    id: UUID
    board_id: UUID
    card_id: Optional[UUID] = None
    profile_id: UUID
    action_type: str
    action_data: dict
    created_at: datetime

    model_config = {"from_attributes": True}


def compute_move_position(sibling_positions: Sequence[float], slot: float) -> float:
    """Compute the stored position for a card dropped into ``slot``.

    ``sibling_positions`` are the positions of the other cards in the target
    list, ascending. ``slot`` is 1-based; 0 and 1 both mean the top, and a
    fractional slot counts as the whole slot it falls in.

    Rules:
    - Empty list: 1.
    - Top: half of the first position, or 0.5 when that is not positive.
    - Past the end: last position + 1.
    - Between two cards: their midpoint, or before + 0.1 if the midpoint
      collapses onto a neighbour.
    """
    if not sibling_positions:
        return 1.0

    slot = int(slot)
    if slot <= 1:
        position = sibling_positions[0] / 2
        return position if position > 0 else 0.5

    if slot > len(sibling_positions):
        return sibling_positions[-1] + 1

    before = sibling_positions[slot - 2]
    after = sibling_positions[slot - 1]
    position = (before + after) / 2
    if position <= before or position >= after:
        position = before + 0.1
    return position


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------

class AttachmentType(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    LINK = "link"


ATTACHMENT_EXTENSIONS: dict[AttachmentType, frozenset[str]] = {
    AttachmentType.IMAGE: frozenset({"jpg", "jpeg", "png", "gif", "webp", "svg", "bmp", "ico"}),
    AttachmentType.DOCUMENT: frozenset({"pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt"}),
    AttachmentType.VIDEO: frozenset({"mp4", "avi", "mov", "wmv", "flv", "webm", "mkv"}),
    AttachmentType.AUDIO: frozenset({"mp3", "wav", "ogg", "flac", "aac", "m4a"}),
    AttachmentType.ARCHIVE: frozenset({"zip", "rar", "7z", "tar", "gz", "bz2"}),
}


def detect_attachment_type(url: str) -> AttachmentType:
    """Classify an attachment by the extension of its URL path; anything else is a link."""
    name = urlsplit(url.strip()).path.rsplit("/", 1)[-1].lower()
    if "." not in name:
        return AttachmentType.LINK
    extension = name.rsplit(".", 1)[-1]
    for kind, extensions in ATTACHMENT_EXTENSIONS.items():
        if extension in extensions:
            return kind
    return AttachmentType.LINK


class AttachmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2048)


class AttachmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    url: Optional[str] = Field(None, min_length=1, max_length=2048)

    @field_validator("name", "url")
    @classmethod
    def non_nullable(cls, value):
        return reject_null(value)


class AttachmentRead(BaseModel):
    id: UUID
    card_id: UUID
    name: str
    url: str
    type: AttachmentType
    created_by: UUID
    created_at: datetime
    updated_at: datetime
