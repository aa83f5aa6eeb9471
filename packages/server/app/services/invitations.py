"""
Invitation service: issuing, resending, cancelling and redeeming workspace
invitations, plus the roster of profiles a card can be assigned to.

Invitations are addressed to an email. Issuing, resending and cancelling
follow the workspace's membership restriction; redeeming is reserved to the
profile whose email the invitation names.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import timedelta

import structlog
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.models.base import as_utc, utcnow
from app.models.board import Board, BoardMember
from app.models.invitation import Invitation
from app.models.profile import Profile
from app.models.workspace import Workspace, WorkspaceMember
from app.services.workspaces import get_membership, require_membership, settings_for

from kanban_shared.schemas.common import WorkspaceRole
from kanban_shared.schemas.workspaces import InvitationCreate, can_invite_members

log = structlog.get_logger()
settings = get_settings()


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _expiry():
    return utcnow() + timedelta(days=settings.invitation_expire_days)


def is_pending(invitation: Invitation) -> bool:
    """Not yet accepted and not yet expired."""
    return invitation.accepted_at is None and as_utc(invitation.expires_at) > utcnow()


async def require_inviter(
    session: AsyncSession, workspace: Workspace, profile_id: uuid.UUID
) -> WorkspaceMember:
    """A member whose role passes the workspace's membership restriction."""
    membership = await require_membership(session, workspace.id, profile_id)
    if not can_invite_members(settings_for(workspace), membership.role):
        raise HTTPException(
            status_code=403, detail="You do not have permission to manage invitations"
        )
    return membership


async def list_pending(session: AsyncSession, workspace_id: uuid.UUID) -> list[Invitation]:
    result = await session.execute(
        select(Invitation)
        .where(Invitation.workspace_id == workspace_id, Invitation.accepted_at.is_(None))
        .order_by(Invitation.created_at.desc())
    )
    return [inv for inv in result.scalars().all() if is_pending(inv)]


async def get_pending_or_404(
    session: AsyncSession, workspace_id: uuid.UUID, invitation_id: uuid.UUID
) -> Invitation:
    invitation = await session.get(Invitation, invitation_id)
    if not invitation or invitation.workspace_id != workspace_id or invitation.accepted_at:
        raise HTTPException(status_code=404, detail="Invitation not found")
    return invitation


async def issue_invitation(
    session: AsyncSession,
    workspace: Workspace,
    req: InvitationCreate,
    inviter_id: uuid.UUID,
) -> Invitation:
    if req.role == WorkspaceRole.OWNER:
        raise HTTPException(status_code=400, detail="A workspace has exactly one owner")

    email = str(req.email).lower()

    profile = (
        await session.execute(select(Profile).where(func.lower(Profile.email) == email))
    ).scalar_one_or_none()
    if profile and await get_membership(session, workspace.id, profile.id):
        raise HTTPException(status_code=409, detail="User is already a member of this workspace")

    existing = await session.execute(
        select(Invitation).where(
            Invitation.workspace_id == workspace.id,
            Invitation.email == email,
            Invitation.accepted_at.is_(None),
        )
    )
    for invitation in existing.scalars().all():
        if is_pending(invitation):
            raise HTTPException(
                status_code=409, detail="There is already a pending invitation for this email"
            )
        # Expired leftovers would only clutter the table.
        await session.delete(invitation)

    invitation = Invitation(
        workspace_id=workspace.id,
        email=email,
        role=req.role.value,
        token=_new_token(),
        invited_by=inviter_id,
        expires_at=_expiry(),
    )
    session.add(invitation)
    await session.flush()

    log.info(
        "invitation.issued",
        workspace_id=str(workspace.id),
        invitation_id=str(invitation.id),
        role=invitation.role,
    )
    return invitation


async def resend_invitation(session: AsyncSession, invitation: Invitation) -> Invitation:
    """Rotate the token and restart the expiry clock."""
    invitation.token = _new_token()
    invitation.expires_at = _expiry()
    invitation.created_at = utcnow()
    session.add(invitation)
    await session.flush()
    log.info("invitation.resent", invitation_id=str(invitation.id))
    return invitation


async def _redeemable(
    session: AsyncSession, token: str, profile_id: uuid.UUID
) -> tuple[Invitation, Profile]:
    result = await session.execute(select(Invitation).where(Invitation.token == token))
    invitation = result.scalar_one_or_none()
    if not invitation or invitation.accepted_at is not None:
        raise HTTPException(status_code=404, detail="Invitation not found")
    if as_utc(invitation.expires_at) <= utcnow():
        raise HTTPException(status_code=410, detail="Invitation has expired")

    profile = await session.get(Profile, profile_id)
    if not profile or (profile.email or "").lower() != invitation.email:
        raise HTTPException(status_code=403, detail="This invitation is addressed to someone else")
    return invitation, profile


async def accept_invitation(
    session: AsyncSession, token: str, profile_id: uuid.UUID
) -> Invitation:
    """Join the workspace with the invited role. Existing members keep their role."""
    invitation, profile = await _redeemable(session, token, profile_id)

    if not await get_membership(session, invitation.workspace_id, profile.id):
        session.add(
            WorkspaceMember(
                workspace_id=invitation.workspace_id,
                profile_id=profile.id,
                role=invitation.role,
            )
        )
    invitation.accepted_at = utcnow()
    session.add(invitation)
    await session.flush()

    log.info(
        "invitation.accepted",
        workspace_id=str(invitation.workspace_id),
        profile_id=str(profile.id),
    )
    return invitation


async def decline_invitation(session: AsyncSession, token: str, profile_id: uuid.UUID) -> None:
    invitation, _ = await _redeemable(session, token, profile_id)
    await session.delete(invitation)
    await session.flush()
    log.info("invitation.declined", workspace_id=str(invitation.workspace_id))


async def list_for_profile(session: AsyncSession, profile_id: uuid.UUID) -> list[Invitation]:
    """Pending invitations addressed to the profile's email."""
    profile = await session.get(Profile, profile_id)
    if not profile or not profile.email:
        return []
    result = await session.execute(
        select(Invitation)
        .where(Invitation.email == profile.email.lower(), Invitation.accepted_at.is_(None))
        .order_by(Invitation.created_at.desc())
    )
    return [inv for inv in result.scalars().all() if is_pending(inv)]


def _available(profile: Profile, role: str) -> dict:
    return {
        "profile_id": profile.id,
        "role": role,
        "full_name": profile.full_name,
        "email": profile.email,
        "avatar_url": profile.avatar_url,
    }


async def available_members(
    session: AsyncSession, workspace_id: uuid.UUID, board: Board | None = None
) -> list[dict]:
    """Workspace members, widened by the board's direct members and owner, sorted by name."""
    result = await session.execute(
        select(WorkspaceMember, Profile)
        .join(Profile, Profile.id == WorkspaceMember.profile_id)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.joined_at)
    )
    roster = {profile.id: _available(profile, member.role) for member, profile in result.all()}

    if board is not None:
        result = await session.execute(
            select(BoardMember, Profile)
            .join(Profile, Profile.id == BoardMember.profile_id)
            .where(BoardMember.board_id == board.id)
        )
        for member, profile in result.all():
            roster.setdefault(profile.id, _available(profile, member.role))

        if board.owner_id not in roster:
            owner = await session.get(Profile, board.owner_id)
            if owner:
                roster[owner.id] = _available(owner, WorkspaceRole.OWNER.value)

    return sorted(
        roster.values(),
        key=lambda m: (m["full_name"] or m["email"] or "").lower(),
    )
