"""
Workspace endpoints: CRUD, settings, membership.

- Any authenticated principal may create a workspace and becomes its owner.
- Settings and member roles are managed by owners and admins.
- Inviting members follows the workspace's membership restriction.
- Members may always leave; the owner can neither leave nor be removed.
- Invitations by email are managed under the same membership restriction.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentPrincipal, get_current_principal
from app.core.database import get_session
from app.models.workspace import WorkspaceMember
from app.services.access import BoardAccessPolicy, ensure_allowed, get_access_policy
from app.services.boards import get_board_or_404
from app.services.invitations import (
    available_members,
    get_pending_or_404,
    issue_invitation,
    list_pending,
    require_inviter,
    resend_invitation,
)
from app.services.workspaces import (
    add_member,
    capabilities_for,
    create_workspace,
    get_membership,
    get_workspace_or_404,
    list_members,
    list_profile_workspaces,
    require_manager,
    require_membership,
    settings_for,
    update_settings,
)
from kanban_shared.schemas.common import WorkspaceRole
from kanban_shared.schemas.workspaces import (
    AvailableMemberRead,
    InvitationCreate,
    InvitationIssued,
    InvitationRead,
    WorkspaceCreate,
    WorkspaceListItem,
    WorkspaceMemberAdd,
    WorkspaceMemberRead,
    WorkspaceMemberUpdate,
    WorkspaceRead,
    WorkspaceSettings,
    WorkspaceSettingsRead,
    WorkspaceSettingsUpdate,
    WorkspaceUpdate,
    can_invite_members,
)

router = APIRouter()
log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Workspace CRUD
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[WorkspaceListItem])
async def list_workspaces(
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    """List the workspaces the principal belongs to, with their role."""
    return await list_profile_workspaces(principal.profile_id, session)


@router.post("/", response_model=WorkspaceRead, status_code=201)
async def create_workspace_endpoint(
    body: WorkspaceCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    workspace = await create_workspace(body, principal.profile_id, session)
    await session.commit()
    await session.refresh(workspace)
    return workspace


@router.get("/{workspace_id}", response_model=WorkspaceRead)
async def get_workspace(
    workspace_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    await require_membership(session, workspace_id, principal.profile_id)
    return await get_workspace_or_404(session, workspace_id)


@router.patch("/{workspace_id}", response_model=WorkspaceRead)
async def update_workspace(
    workspace_id: uuid.UUID,
    body: WorkspaceUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    await require_manager(session, workspace_id, principal.profile_id)
    workspace = await get_workspace_or_404(session, workspace_id)

    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(workspace, key, value)
    workspace.touch()
    session.add(workspace)
    await session.commit()
    await session.refresh(workspace)
    return workspace


@router.delete("/{workspace_id}")
async def delete_workspace(
    workspace_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    """Delete a workspace and everything in it. Owner only."""
    workspace = await get_workspace_or_404(session, workspace_id)
    if workspace.owner_id != principal.profile_id:
        raise HTTPException(status_code=403, detail="Only the workspace owner can delete it")

    await session.delete(workspace)
    await session.commit()
    log.info("workspace.deleted", workspace_id=str(workspace_id))
    return {"ok": True}


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@router.get("/{workspace_id}/settings", response_model=WorkspaceSettingsRead)
async def get_workspace_settings(
    workspace_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    """Stored settings, the caller's role, and what that role may do."""
    membership = await require_membership(session, workspace_id, principal.profile_id)
    workspace = await get_workspace_or_404(session, workspace_id)
    return WorkspaceSettingsRead(
        settings=settings_for(workspace) or WorkspaceSettings(),
        user_role=membership.role,
        capabilities=capabilities_for(workspace, membership.role),
    )


@router.patch("/{workspace_id}/settings", response_model=WorkspaceSettingsRead)
async def update_workspace_settings(
    workspace_id: uuid.UUID,
    body: WorkspaceSettingsUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    membership = await require_manager(session, workspace_id, principal.profile_id)
    workspace = await get_workspace_or_404(session, workspace_id)
    workspace = await update_settings(workspace, body, session)
    await session.commit()
    await session.refresh(workspace)
    return WorkspaceSettingsRead(
        settings=settings_for(workspace) or WorkspaceSettings(),
        user_role=membership.role,
        capabilities=capabilities_for(workspace, membership.role),
    )


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


@router.get("/{workspace_id}/members", response_model=List[WorkspaceMemberRead])
async def list_workspace_members(
    workspace_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    await require_membership(session, workspace_id, principal.profile_id)
    return await list_members(session, workspace_id)


@router.post("/{workspace_id}/members", response_model=WorkspaceMemberRead, status_code=201)
async def add_workspace_member(
    workspace_id: uuid.UUID,
    body: WorkspaceMemberAdd,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    """Invite a profile, subject to the workspace's membership restriction."""
    membership = await require_membership(session, workspace_id, principal.profile_id)
    workspace = await get_workspace_or_404(session, workspace_id)

    if not can_invite_members(settings_for(workspace), membership.role):
        raise HTTPException(
            status_code=403,
            detail="You do not have permission to add members to this workspace",
        )

    await add_member(session, workspace, body.profile_id, body.role)
    await session.commit()

    members = await list_members(session, workspace_id)
    return next(m for m in members if m["profile_id"] == body.profile_id)


@router.patch("/{workspace_id}/members/{profile_id}", response_model=WorkspaceMemberRead)
async def update_workspace_member(
    workspace_id: uuid.UUID,
    profile_id: uuid.UUID,
    body: WorkspaceMemberUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    """Change a member's role. The owner's role is fixed."""
    await require_manager(session, workspace_id, principal.profile_id)
    workspace = await get_workspace_or_404(session, workspace_id)

    target = await get_membership(session, workspace_id, profile_id)
    if not target:
        raise HTTPException(status_code=404, detail="Member not found")
    if profile_id == workspace.owner_id or body.role == WorkspaceRole.OWNER:
        raise HTTPException(status_code=400, detail="Workspace ownership cannot be changed here")

    target.role = body.role.value
    session.add(target)
    await session.commit()

    members = await list_members(session, workspace_id)
    return next(m for m in members if m["profile_id"] == profile_id)


@router.delete("/{workspace_id}/members/{profile_id}")
async def remove_workspace_member(
    workspace_id: uuid.UUID,
    profile_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member (owner/admin), or leave the workspace yourself."""
    if profile_id == principal.profile_id:
        await require_membership(session, workspace_id, principal.profile_id)
    else:
        await require_manager(session, workspace_id, principal.profile_id)
    workspace = await get_workspace_or_404(session, workspace_id)

    if profile_id == workspace.owner_id:
        raise HTTPException(status_code=400, detail="The workspace owner cannot be removed")

    target: WorkspaceMember | None = await get_membership(session, workspace_id, profile_id)
    if not target:
        raise HTTPException(status_code=404, detail="Member not found")

    await session.delete(target)
    await session.commit()
    log.info(
        "workspace.member_removed",
        workspace_id=str(workspace_id),
        profile_id=str(profile_id),
        by=str(principal.profile_id),
    )
    return {"ok": True}


@router.get("/{workspace_id}/available-members", response_model=List[AvailableMemberRead])
async def list_available_members(
    workspace_id: uuid.UUID,
    board_id: Optional[uuid.UUID] = None,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Profiles a card can be assigned to, optionally widened to a board's members."""
    await require_membership(session, workspace_id, principal.profile_id)

    board = None
    if board_id is not None:
        ensure_allowed(await policy.check_board(board_id, principal.profile_id), "Board")
        board = await get_board_or_404(session, board_id)
        if board.workspace_id != workspace_id:
            raise HTTPException(status_code=404, detail="Board not found")

    return await available_members(session, workspace_id, board)


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


@router.get("/{workspace_id}/invitations", response_model=List[InvitationRead])
async def list_invitations(
    workspace_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    """Pending invitations, most recently sent first."""
    await require_membership(session, workspace_id, principal.profile_id)
    return await list_pending(session, workspace_id)


@router.post("/{workspace_id}/invitations", response_model=InvitationIssued, status_code=201)
async def create_invitation(
    workspace_id: uuid.UUID,
    body: InvitationCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    workspace = await get_workspace_or_404(session, workspace_id)
    await require_inviter(session, workspace, principal.profile_id)
    invitation = await issue_invitation(session, workspace, body, principal.profile_id)
    await session.commit()
    return invitation


@router.patch("/{workspace_id}/invitations/{invitation_id}", response_model=InvitationIssued)
async def resend_invitation_endpoint(
    workspace_id: uuid.UUID,
    invitation_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    """Resend: a fresh token and a fresh expiry."""
    workspace = await get_workspace_or_404(session, workspace_id)
    await require_inviter(session, workspace, principal.profile_id)
    invitation = await get_pending_or_404(session, workspace_id, invitation_id)
    invitation = await resend_invitation(session, invitation)
    await session.commit()
    return invitation


@router.delete("/{workspace_id}/invitations/{invitation_id}")
async def cancel_invitation(
    workspace_id: uuid.UUID,
    invitation_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    workspace = await get_workspace_or_404(session, workspace_id)
    await require_inviter(session, workspace, principal.profile_id)
    invitation = await get_pending_or_404(session, workspace_id, invitation_id)
    await session.delete(invitation)
    await session.commit()
    log.info("invitation.cancelled", workspace_id=str(workspace_id), invitation_id=str(invitation_id))
    return {"ok": True}
