"""
Workspace service: business logic for workspace CRUD, membership and settings.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.profile import Profile
from app.models.workspace import Workspace, WorkspaceMember

from kanban_shared.schemas.common import WORKSPACE_MANAGER_ROLES, WorkspaceRole
from kanban_shared.schemas.workspaces import (
    WorkspaceCapabilities,
    WorkspaceCreate,
    WorkspaceSettings,
    WorkspaceSettingsUpdate,
    can_create_boards,
    can_delete_boards,
    can_invite_members,
    load_settings,
)

log = structlog.get_logger()


async def get_workspace_or_404(session: AsyncSession, workspace_id: uuid.UUID) -> Workspace:
    workspace = await session.get(Workspace, workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return workspace


async def get_membership(
    session: AsyncSession, workspace_id: uuid.UUID, profile_id: uuid.UUID
) -> WorkspaceMember | None:
    result = await session.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.profile_id == profile_id,
        )
    )
    return result.scalar_one_or_none()


async def require_membership(
    session: AsyncSession, workspace_id: uuid.UUID, profile_id: uuid.UUID
) -> WorkspaceMember:
    """Resolve the principal's membership; 404 for a missing workspace, 403 for non-members."""
    await get_workspace_or_404(session, workspace_id)
    membership = await get_membership(session, workspace_id, profile_id)
    if not membership:
        raise HTTPException(status_code=403, detail="Not a member of this workspace")
    return membership


async def require_manager(
    session: AsyncSession, workspace_id: uuid.UUID, profile_id: uuid.UUID
) -> WorkspaceMember:
    """Owner or admin of the workspace."""
    membership = await require_membership(session, workspace_id, profile_id)
    if membership.role not in WORKSPACE_MANAGER_ROLES:
        raise HTTPException(
            status_code=403, detail="Only admins and owners can manage this workspace"
        )
    return membership


def settings_for(workspace: Workspace) -> WorkspaceSettings | None:
    return load_settings(workspace.settings)


def capabilities_for(workspace: Workspace, role: str) -> WorkspaceCapabilities:
    settings = settings_for(workspace)
    return WorkspaceCapabilities(
        can_create_boards=can_create_boards(settings, role),
        can_delete_boards=can_delete_boards(settings, role),
        can_invite_members=can_invite_members(settings, role),
    )


async def list_profile_workspaces(
    profile_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """List all workspaces a profile belongs to, with their role."""
    result = await session.execute(
        select(Workspace, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .where(WorkspaceMember.profile_id == profile_id)
        .order_by(Workspace.created_at)
    )
    return [
        {
            "id": ws.id,
            "name": ws.name,
            "description": ws.description,
            "owner_id": ws.owner_id,
            "role": role,
        }
        for ws, role in result.all()
    ]


async def create_workspace(
    req: WorkspaceCreate, creator_id: uuid.UUID, session: AsyncSession
) -> Workspace:
    """Create a workspace and make the creator its owner."""
    workspace = Workspace(
        name=req.name.strip(),
        description=req.description.strip() if req.description else None,
        owner_id=creator_id,
        settings={},
    )
    session.add(workspace)
    await session.flush()

    session.add(
        WorkspaceMember(
            workspace_id=workspace.id,
            profile_id=creator_id,
            role=WorkspaceRole.OWNER.value,
        )
    )
    await session.flush()

    log.info("workspace.created", workspace_id=str(workspace.id), creator=str(creator_id))
    return workspace


async def update_settings(
    workspace: Workspace,
    req: WorkspaceSettingsUpdate,
    session: AsyncSession,
) -> Workspace:
    """Merge validated settings into the stored document."""
    patch = req.model_dump(exclude_none=True, mode="json")
    merged = {**(workspace.settings or {}), **patch}
    workspace.settings = merged
    workspace.touch()
    session.add(workspace)
    await session.flush()

    log.info("workspace.settings_updated", workspace_id=str(workspace.id), keys=sorted(patch))
    return workspace


async def list_members(session: AsyncSession, workspace_id: uuid.UUID) -> list[dict]:
    result = await session.execute(
        select(WorkspaceMember, Profile)
        .join(Profile, Profile.id == WorkspaceMember.profile_id)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.joined_at)
    )
    return [
        {
            "profile_id": member.profile_id,
            "role": member.role,
            "full_name": profile.full_name,
            "email": profile.email,
            "avatar_url": profile.avatar_url,
            "joined_at": member.joined_at,
        }
        for member, profile in result.all()
    ]


async def add_member(
    session: AsyncSession,
    workspace: Workspace,
    profile_id: uuid.UUID,
    role: WorkspaceRole,
) -> WorkspaceMember:
    if role == WorkspaceRole.OWNER:
        raise HTTPException(status_code=400, detail="A workspace has exactly one owner")

    if not await session.get(Profile, profile_id):
        raise HTTPException(status_code=404, detail="Profile not found")

    if await get_membership(session, workspace.id, profile_id):
        raise HTTPException(status_code=409, detail="Already a member of this workspace")

    member = WorkspaceMember(workspace_id=workspace.id, profile_id=profile_id, role=role.value)
    session.add(member)
    await session.flush()

    log.info(
        "workspace.member_added",
        workspace_id=str(workspace.id),
        profile_id=str(profile_id),
        role=role.value,
    )
    return member
