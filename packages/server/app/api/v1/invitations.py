"""
Invitee-side invitation endpoints: the principal's pending invitations and
redeeming one by token.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentPrincipal, get_current_principal
from app.core.database import get_session
from app.services.invitations import accept_invitation, decline_invitation, list_for_profile
from kanban_shared.schemas.workspaces import InvitationRead, InvitationToken

router = APIRouter()


@router.get("/", response_model=List[InvitationRead])
async def list_my_invitations(
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    """Pending invitations addressed to the principal's email."""
    return await list_for_profile(session, principal.profile_id)


@router.post("/accept", response_model=InvitationRead)
async def accept(
    body: InvitationToken,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    invitation = await accept_invitation(session, body.token, principal.profile_id)
    await session.commit()
    return invitation


@router.post("/decline")
async def decline(
    body: InvitationToken,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    await decline_invitation(session, body.token, principal.profile_id)
    await session.commit()
    return {"ok": True}
