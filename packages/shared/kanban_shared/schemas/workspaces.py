"""
Workspace-related Pydantic schemas shared between server and clients.

Covers: workspace CRUD request/response, membership, workspace settings and
the permission rules derived from them.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional, Union

from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import WorkspaceRole, reject_null


# ---------------------------------------------------------------------------
# Settings enums
# ---------------------------------------------------------------------------

class BoardPolicy(str, Enum):
    """Who may create (or delete) boards in a workspace."""
    ANY_MEMBER = "any_member"
    ADMINS_ONLY = "admins_only"
    OWNER_ONLY = "owner_only"


class MembershipRestriction(str, Enum):
    """Who may invite new members to a workspace."""
    ANYONE = "anyone"
    ADMINS_ONLY = "admins_only"
    OWNER_ONLY = "owner_only"


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------

class WorkspaceSettings(BaseModel):
    """Stored workspace settings.

    Values are kept as raw strings: documents written by older clients may hold
    values outside the current enums, and the permission rules below must still
    answer for them.
    """

    membership_restriction: Optional[str] = None
    board_creation_simplified: Optional[str] = None
    board_deletion_simplified: Optional[str] = None


class WorkspaceSettingsUpdate(BaseModel):
    """Partial settings update. Only known values are accepted on write."""

    membership_restriction: Optional[MembershipRestriction] = None
    board_creation_simplified: Optional[BoardPolicy] = None
    board_deletion_simplified: Optional[BoardPolicy] = None


def load_settings(raw: Optional[Mapping]) -> Optional[WorkspaceSettings]:
    """Build settings from a stored document; an empty document means unset.

    Loading never fails. Unknown keys are dropped and a non-string value reads
    as missing, which the permission rules answer with their fail-safe arm.
    """
    if not raw or not isinstance(raw, Mapping):
        return None
    return WorkspaceSettings(
        **{
            name: value if isinstance(value, str) else None
            for name, value in raw.items()
            if name in WorkspaceSettings.model_fields
        }
    )


# ---------------------------------------------------------------------------
# Permission rules
# ---------------------------------------------------------------------------

_OWNER = frozenset({WorkspaceRole.OWNER.value})
_ADMINS = frozenset({WorkspaceRole.OWNER.value, WorkspaceRole.ADMIN.value})
_EVERYONE = frozenset(
    {WorkspaceRole.OWNER.value, WorkspaceRole.ADMIN.value, WorkspaceRole.MEMBER.value}
)

# Fail-safe: missing settings or an unrecognized value behave like admins_only.
FAIL_SAFE_ROLES = _ADMINS

BOARD_POLICY_ROLES: dict[BoardPolicy, frozenset[str]] = {
    BoardPolicy.OWNER_ONLY: _OWNER,
    BoardPolicy.ADMINS_ONLY: _ADMINS,
    BoardPolicy.ANY_MEMBER: _EVERYONE,
}

MEMBERSHIP_RESTRICTION_ROLES: dict[MembershipRestriction, frozenset[str]] = {
    MembershipRestriction.OWNER_ONLY: _OWNER,
    MembershipRestriction.ADMINS_ONLY: _ADMINS,
    MembershipRestriction.ANYONE: _EVERYONE,
}


def _role_value(role: Union[WorkspaceRole, str, None]) -> str:
    if isinstance(role, WorkspaceRole):
        return role.value
    return role or ""


def _allowed_roles(value: Optional[str], table: dict) -> frozenset[str]:
    for variant, roles in table.items():
        if value == variant.value:
            return roles
    # Unrecognized or missing value: explicit fail-safe arm.
    return FAIL_SAFE_ROLES


def can_create_boards(
    settings: Optional[WorkspaceSettings],
    role: Union[WorkspaceRole, str, None],
) -> bool:
    value = settings.board_creation_simplified if settings else None
    return _role_value(role) in _allowed_roles(value, BOARD_POLICY_ROLES)


def can_delete_boards(
    settings: Optional[WorkspaceSettings],
    role: Union[WorkspaceRole, str, None],
) -> bool:
    value = settings.board_deletion_simplified if settings else None
    return _role_value(role) in _allowed_roles(value, BOARD_POLICY_ROLES)


def can_invite_members(
    settings: Optional[WorkspaceSettings],
    role: Union[WorkspaceRole, str, None],
) -> bool:
    value = settings.membership_restriction if settings else None
    return _role_value(role) in _allowed_roles(value, MEMBERSHIP_RESTRICTION_ROLES)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class WorkspaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def non_nullable(cls, value):
        return reject_null(value)


class WorkspaceMemberAdd(BaseModel):
    profile_id: uuid.UUID
    role: WorkspaceRole = WorkspaceRole.MEMBER


class WorkspaceMemberUpdate(BaseModel):
    role: WorkspaceRole


class InvitationCreate(BaseModel):
    email: EmailStr
    role: WorkspaceRole = WorkspaceRole.MEMBER


class InvitationToken(BaseModel):
    token: str = Field(..., min_length=1, max_length=200)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class WorkspaceRead(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WorkspaceListItem(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    owner_id: uuid.UUID
    role: str  # the requesting principal's role in this workspace


class WorkspaceMemberRead(BaseModel):
    profile_id: uuid.UUID
    role: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    joined_at: datetime


class WorkspaceCapabilities(BaseModel):
    can_create_boards: bool
    can_delete_boards: bool
    can_invite_members: bool


class WorkspaceSettingsRead(BaseModel):
    settings: WorkspaceSettings
    user_role: str
    capabilities: WorkspaceCapabilities


class InvitationRead(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    email: str
    role: str
    invited_by: uuid.UUID
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class InvitationIssued(InvitationRead):
    """Returned to the inviter only: the token is what the invitee redeems."""
    token: str


class AvailableMemberRead(BaseModel):
    profile_id: uuid.UUID
    role: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
