from enum import Enum
from typing import Optional
from pydantic import BaseModel

class WorkspaceRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

class BoardRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

class BoardVisibility(str, Enum):
    PRIVATE = "private"
    WORKSPACE = "workspace"
    PUBLIC = "public"

class ActivityType(str, Enum):
    CARD_CREATED = "card_created"
    CARD_UPDATED = "card_updated"
    CARD_MOVED = "card_moved"
    MEMBER_ADDED = "member_added"
    MEMBER_REMOVED = "member_removed"
    LABEL_ADDED = "label_added"
    LABEL_REMOVED = "label_removed"
    COMMENT_ADDED = "comment_added"
    ATTACHMENT_ADDED = "attachment_added"
    ATTACHMENT_REMOVED = "attachment_removed"

# Roles allowed to manage a workspace (settings, member roles)
WORKSPACE_MANAGER_ROLES: frozenset[str] = frozenset(
    {WorkspaceRole.OWNER.value, WorkspaceRole.ADMIN.value}
)

class ErrorBody(BaseModel):
    code: str
    message: str
    status: int

class APIError(BaseModel):
    error: Optional[ErrorBody] = None


def reject_null(value):
    """Validator body for update fields whose column is NOT NULL: null is not a value."""
    if value is None:
        raise ValueError("may not be null")
    return value
