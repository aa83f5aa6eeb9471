"""
Board service: board lifecycle, board membership and listing.

Access to an existing board is always decided by ``BoardAccessPolicy``; the
functions here cover the workspace-level rules (who may create or delete a
board) and the row bookkeeping around them.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.board import Board, BoardMember
from app.models.profile import Profile
from app.models.workspace import Workspace, WorkspaceMember
from app.services.access import BoardAccessPolicy
from app.services.workspaces import get_membership, settings_for

from kanban_shared.schemas.boards import BoardCreate
from kanban_shared.schemas.common import BoardRole, WorkspaceRole
from kanban_shared.schemas.workspaces import can_create_boards, can_delete_boards

log = structlog.get_logger()


async def get_board_or_404(session: AsyncSession, board_id: uuid.UUID) -> Board:
    board = await session.get(Board, board_id)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")
    return board


async def effective_workspace_role(
    session: AsyncSession, workspace: Workspace, profile_id: uuid.UUID
) -> Optional[str]:
    """The principal's workspace role; the workspace owner is always 'owner'."""
    if workspace.owner_id == profile_id:
        return WorkspaceRole.OWNER.value
    membership = await get_membership(session, workspace.id, profile_id)
    return membership.role if membership else None


async def create_board(
    session: AsyncSession, req: BoardCreate, creator_id: uuid.UUID
) -> Board:
    """Create a board if the workspace's creation policy allows it."""
    workspace = await session.get(Workspace, req.workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")

    role = await effective_workspace_role(session, workspace, creator_id)
    if role is None:
        raise HTTPException(status_code=403, detail="Not a member of this workspace")

    if not can_create_boards(settings_for(workspace), role):
        raise HTTPException(
            status_code=403,
            detail="You do not have permission to create boards in this workspace",
        )

    board = Board(
        workspace_id=workspace.id,
        owner_id=creator_id,
        name=req.name.strip(),
        description=req.description.strip() if req.description else None,
        color=req.color,
        visibility=req.visibility.value,
    )
    session.add(board)
    await session.flush()

    session.add(
        BoardMember(board_id=board.id, profile_id=creator_id, role=BoardRole.ADMIN.value)
    )
    await session.flush()

    log.info(
        "board.created",
        board_id=str(board.id),
        workspace_id=str(workspace.id),
        visibility=board.visibility,
    )
    return board


async def ensure_can_delete(
    session: AsyncSession, board: Board, profile_id: uuid.UUID
) -> None:
    """Deletion follows the workspace's deletion policy for the principal's role."""
    workspace = await session.get(Workspace, board.workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")

    role = await effective_workspace_role(session, workspace, profile_id)
    if role is None:
        raise HTTPException(status_code=403, detail="Not a member of this workspace")

    if not can_delete_boards(settings_for(workspace), role):
        raise HTTPException(
            status_code=403,
            detail="You do not have permission to delete boards in this workspace",
        )


async def list_accessible_boards(
    session: AsyncSession,
    policy: BoardAccessPolicy,
    profile_id: uuid.UUID,
    workspace_id: Optional[uuid.UUID] = None,
) -> list[Board]:
    """Non-archived boards the principal can open, newest first.

    The query only narrows the candidates; every returned board has passed the
    access policy.
    """
    workspace_ids = select(WorkspaceMember.workspace_id).where(
        WorkspaceMember.profile_id == profile_id
    )
    member_board_ids = select(BoardMember.board_id).where(
        BoardMember.profile_id == profile_id
    )
    stmt = select(Board).where(
        Board.is_archived == False,  # noqa: E712
        or_(
            Board.owner_id == profile_id,
            Board.id.in_(member_board_ids),
            Board.workspace_id.in_(workspace_ids),
        ),
    )
    if workspace_id:
        stmt = stmt.where(Board.workspace_id == workspace_id)
    stmt = stmt.order_by(Board.created_at.desc())

    result = await session.execute(stmt)
    return [
        board
        for board in result.scalars().all()
        if await policy.has_board_access(board, profile_id)
    ]


async def list_board_members(session: AsyncSession, board_id: uuid.UUID) -> list[dict]:
    result = await session.execute(
        select(BoardMember, Profile)
        .join(Profile, Profile.id == BoardMember.profile_id)
        .where(BoardMember.board_id == board_id)
        .order_by(BoardMember.joined_at)
    )
    return [
        {
            "profile_id": member.profile_id,
            "role": member.role,
            "full_name": profile.full_name,
            "avatar_url": profile.avatar_url,
            "joined_at": member.joined_at,
        }
        for member, profile in result.all()
    ]


async def add_board_member(
    session: AsyncSession, board: Board, profile_id: uuid.UUID, role: BoardRole
) -> BoardMember:
    """Direct board membership is limited to members of the board's workspace."""
    if role == BoardRole.OWNER:
        raise HTTPException(status_code=400, detail="A board has exactly one owner")

    if not await get_membership(session, board.workspace_id, profile_id):
        raise HTTPException(
            status_code=400, detail="Profile is not a member of the board's workspace"
        )

    existing = await session.execute(
        select(BoardMember).where(
            BoardMember.board_id == board.id,
            BoardMember.profile_id == profile_id,
        )
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Already a member of this board")

    member = BoardMember(board_id=board.id, profile_id=profile_id, role=role.value)
    session.add(member)
    await session.flush()
    log.info("board.member_added", board_id=str(board.id), profile_id=str(profile_id))
    return member
