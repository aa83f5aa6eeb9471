"""
Board access policy.

A principal may act on a board (and on everything that hangs off it: lists,
cards, labels, comments, checklists, activity) when one of three tiers
matches, checked in this order:

1. The principal owns the board. No query: the board row carries owner_id.
2. The principal has a board_members row for the board, in any role.
3. The board's visibility is exactly "workspace" and the principal has a
   workspace_members row for the board's workspace.

Anything else is denied. Other visibility values ("private", "public", or
values written by older clients) never reach tier 3.

Every check re-queries the store: membership changes between requests and a
stale answer would be a security defect. A row that is absent is an ordinary
outcome; only a failure of the store itself raises ``LookupFailure``.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Optional, Protocol

import structlog
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import get_session
from app.core.errors import AccessDenied, LookupFailure, ResourceNotFound
from app.models.board import Board, BoardMember
from app.models.card import Card
from app.models.workspace import WorkspaceMember
from kanban_shared.schemas.common import BoardRole, BoardVisibility

log = structlog.get_logger()


class AccessDecision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    NOT_FOUND = "not_found"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


class AccessLookups(Protocol):
    """Point lookups the policy needs. Each returns None when the row is absent."""

    async def get_board(self, board_id: uuid.UUID) -> Optional[Board]: ...

    async def get_board_membership(
        self, board_id: uuid.UUID, profile_id: uuid.UUID
    ) -> Optional[BoardMember]: ...

    async def get_workspace_membership(
        self, workspace_id: uuid.UUID, profile_id: uuid.UUID
    ) -> Optional[WorkspaceMember]: ...

    async def get_card(self, card_id: uuid.UUID) -> Optional[Card]: ...


class SessionAccessLookups:
    """Lookups backed by the request's database session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_board(self, board_id: uuid.UUID) -> Optional[Board]:
        try:
            return await self.session.get(Board, board_id)
        except SQLAlchemyError as exc:
            raise LookupFailure("board", exc) from exc

    async def get_board_membership(
        self, board_id: uuid.UUID, profile_id: uuid.UUID
    ) -> Optional[BoardMember]:
        try:
            result = await self.session.execute(
                select(BoardMember).where(
                    BoardMember.board_id == board_id,
                    BoardMember.profile_id == profile_id,
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise LookupFailure("board_membership", exc) from exc

    async def get_workspace_membership(
        self, workspace_id: uuid.UUID, profile_id: uuid.UUID
    ) -> Optional[WorkspaceMember]:
        try:
            result = await self.session.execute(
                select(WorkspaceMember).where(
                    WorkspaceMember.workspace_id == workspace_id,
                    WorkspaceMember.profile_id == profile_id,
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise LookupFailure("workspace_membership", exc) from exc

    async def get_card(self, card_id: uuid.UUID) -> Optional[Card]:
        try:
            return await self.session.get(Card, card_id)
        except SQLAlchemyError as exc:
            raise LookupFailure("card", exc) from exc


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class BoardAccessPolicy:
    """Decides whether a principal may act on a board or card."""

    def __init__(self, lookups: AccessLookups):
        self.lookups = lookups

    async def access_role(self, board: Board, principal_id: uuid.UUID) -> Optional[str]:
        """Role carried by the first tier that grants access, or None.

        The board owner is "owner"; otherwise the role on the granting
        board_members or workspace_members row.
        """
        if board.owner_id == principal_id:
            return BoardRole.OWNER.value

        board_membership = await self.lookups.get_board_membership(board.id, principal_id)
        if board_membership is not None:
            return board_membership.role

        if board.visibility == BoardVisibility.WORKSPACE.value:
            membership = await self.lookups.get_workspace_membership(
                board.workspace_id, principal_id
            )
            if membership is not None:
                return membership.role

        return None

    async def has_board_access(self, board: Board, principal_id: uuid.UUID) -> bool:
        return await self.access_role(board, principal_id) is not None

    async def check_board(
        self, board_id: uuid.UUID, principal_id: uuid.UUID
    ) -> AccessDecision:
        board = await self.lookups.get_board(board_id)
        if board is None:
            return AccessDecision.NOT_FOUND
        return await self._decide(board, principal_id, resource="board")

    async def check_card(
        self, card_id: uuid.UUID, principal_id: uuid.UUID
    ) -> AccessDecision:
        card = await self.lookups.get_card(card_id)
        if card is None:
            return AccessDecision.NOT_FOUND
        board = await self.lookups.get_board(card.board_id)
        if board is None:
            return AccessDecision.NOT_FOUND
        return await self._decide(board, principal_id, resource="card")

    async def has_card_access(self, card_id: uuid.UUID, principal_id: uuid.UUID) -> bool:
        """Card access is exactly the parent board's access.

        Raises ResourceNotFound when the card or its board does not exist.
        """
        card = await self.lookups.get_card(card_id)
        if card is None:
            raise ResourceNotFound("Card", card_id)
        board = await self.lookups.get_board(card.board_id)
        if board is None:
            raise ResourceNotFound("Board", card.board_id)
        return await self.has_board_access(board, principal_id)

    async def check_card_member_removal(
        self,
        card_id: uuid.UUID,
        principal_id: uuid.UUID,
        member_id: uuid.UUID,
    ) -> AccessDecision:
        """Removing other members needs card access; removing yourself never does."""
        if member_id == principal_id:
            if await self.lookups.get_card(card_id) is None:
                return AccessDecision.NOT_FOUND
            return AccessDecision.ALLOWED
        return await self.check_card(card_id, principal_id)

    async def _decide(
        self, board: Board, principal_id: uuid.UUID, *, resource: str
    ) -> AccessDecision:
        if await self.has_board_access(board, principal_id):
            return AccessDecision.ALLOWED
        log.info(
            "access.denied",
            resource=resource,
            board_id=str(board.id),
            principal_id=str(principal_id),
        )
        return AccessDecision.DENIED


def ensure_allowed(decision: AccessDecision, resource: str) -> None:
    """Raise the error matching a non-ALLOWED decision."""
    if decision == AccessDecision.NOT_FOUND:
        raise ResourceNotFound(resource)
    if decision == AccessDecision.DENIED:
        raise AccessDenied(resource)


async def get_access_policy(
    session: AsyncSession = Depends(get_session),
) -> BoardAccessPolicy:
    """FastAPI dependency: a policy bound to the request's session."""
    return BoardAccessPolicy(SessionAccessLookups(session))
