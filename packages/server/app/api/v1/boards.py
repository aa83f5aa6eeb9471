"""
Board endpoints: CRUD, direct membership, labels.

Every endpoint on an existing board goes through the access policy
(owner → board member → workspace member on workspace-visible boards).
Creation and deletion additionally follow the workspace's board policies.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import CurrentPrincipal, get_current_principal
from app.core.database import get_session
from app.models.board import BoardMember
from app.models.label import Label
from app.services.access import BoardAccessPolicy, ensure_allowed, get_access_policy
from app.services.boards import (
    add_board_member,
    create_board,
    ensure_can_delete,
    get_board_or_404,
    list_accessible_boards,
    list_board_members,
)
from kanban_shared.schemas.boards import (
    BoardCreate,
    BoardMemberAdd,
    BoardMemberRead,
    BoardRead,
    BoardUpdate,
    LabelCreate,
    LabelRead,
    LabelUpdate,
)

router = APIRouter()
log = structlog.get_logger()


async def _require_board(
    board_id: uuid.UUID,
    principal: CurrentPrincipal,
    policy: BoardAccessPolicy,
) -> None:
    ensure_allowed(await policy.check_board(board_id, principal.profile_id), "Board")


# ---------------------------------------------------------------------------
# Board CRUD
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[BoardRead])
async def list_boards(
    workspace_id: Optional[uuid.UUID] = None,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """List non-archived boards the principal can access, optionally per workspace."""
    return await list_accessible_boards(session, policy, principal.profile_id, workspace_id)


@router.post("/", response_model=BoardRead, status_code=201)
async def create_board_endpoint(
    body: BoardCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    board = await create_board(session, body, principal.profile_id)
    await session.commit()
    await session.refresh(board)
    return board


@router.get("/{board_id}", response_model=BoardRead)
async def get_board(
    board_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_board(board_id, principal, policy)
    return await get_board_or_404(session, board_id)


@router.patch("/{board_id}", response_model=BoardRead)
async def update_board(
    board_id: uuid.UUID,
    body: BoardUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_board(board_id, principal, policy)
    board = await get_board_or_404(session, board_id)

    update_data = body.model_dump(exclude_unset=True, mode="json")
    for key, value in update_data.items():
        setattr(board, key, value)
    board.touch()

    session.add(board)
    await session.commit()
    await session.refresh(board)
    log.info("board.updated", board_id=str(board.id), fields=sorted(update_data))
    return board


@router.delete("/{board_id}")
async def delete_board(
    board_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Delete a board, subject to the workspace's deletion policy."""
    await _require_board(board_id, principal, policy)
    board = await get_board_or_404(session, board_id)
    await ensure_can_delete(session, board, principal.profile_id)

    await session.delete(board)
    await session.commit()
    log.info("board.deleted", board_id=str(board_id), by=str(principal.profile_id))
    return {"ok": True}


# ---------------------------------------------------------------------------
# Board Membership
# ---------------------------------------------------------------------------


@router.get("/{board_id}/members", response_model=List[BoardMemberRead])
async def list_members(
    board_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_board(board_id, principal, policy)
    return await list_board_members(session, board_id)


@router.post("/{board_id}/members", response_model=BoardMemberRead, status_code=201)
async def add_member(
    board_id: uuid.UUID,
    body: BoardMemberAdd,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_board(board_id, principal, policy)
    board = await get_board_or_404(session, board_id)
    await add_board_member(session, board, body.profile_id, body.role)
    await session.commit()

    members = await list_board_members(session, board_id)
    return next(m for m in members if m["profile_id"] == body.profile_id)


@router.delete("/{board_id}/members/{profile_id}")
async def remove_member(
    board_id: uuid.UUID,
    profile_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_board(board_id, principal, policy)
    board = await get_board_or_404(session, board_id)
    if profile_id == board.owner_id:
        raise HTTPException(status_code=400, detail="The board owner cannot be removed")

    result = await session.execute(
        select(BoardMember).where(
            BoardMember.board_id == board_id,
            BoardMember.profile_id == profile_id,
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=404, detail="User is not a member of this board")

    await session.delete(member)
    await session.commit()
    return {"ok": True}


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


async def _get_label_or_404(
    session: AsyncSession, board_id: uuid.UUID, label_id: uuid.UUID
) -> Label:
    label = await session.get(Label, label_id)
    if not label or label.board_id != board_id:
        raise HTTPException(status_code=404, detail="Label not found")
    return label


@router.get("/{board_id}/labels", response_model=List[LabelRead])
async def list_labels(
    board_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_board(board_id, principal, policy)
    result = await session.execute(
        select(Label).where(Label.board_id == board_id).order_by(Label.name)
    )
    return list(result.scalars().all())


@router.post("/{board_id}/labels", response_model=LabelRead, status_code=201)
async def create_label(
    board_id: uuid.UUID,
    body: LabelCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_board(board_id, principal, policy)
    label = Label(
        board_id=board_id,
        name=body.name.strip() if body.name else None,
        color=body.color,
    )
    session.add(label)
    await session.commit()
    await session.refresh(label)
    return label


@router.patch("/{board_id}/labels/{label_id}", response_model=LabelRead)
async def update_label(
    board_id: uuid.UUID,
    label_id: uuid.UUID,
    body: LabelUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_board(board_id, principal, policy)
    label = await _get_label_or_404(session, board_id, label_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(label, key, value)
    session.add(label)
    await session.commit()
    await session.refresh(label)
    return label


@router.delete("/{board_id}/labels/{label_id}")
async def delete_label(
    board_id: uuid.UUID,
    label_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_board(board_id, principal, policy)
    label = await _get_label_or_404(session, board_id, label_id)
    await session.delete(label)
    await session.commit()
    return {"ok": True}
