"""
Card service: creation, ordering and moves between lists.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.board_list import BoardList
from app.models.card import Card
from app.services.activity import record_activity

from kanban_shared.schemas.cards import CardCreate, CardMove, compute_move_position
from kanban_shared.schemas.common import ActivityType

log = structlog.get_logger()


async def get_list_or_404(session: AsyncSession, list_id: uuid.UUID) -> BoardList:
    board_list = await session.get(BoardList, list_id)
    if not board_list:
        raise HTTPException(status_code=404, detail="List not found")
    return board_list


async def get_card_or_404(session: AsyncSession, card_id: uuid.UUID) -> Card:
    card = await session.get(Card, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Card not found")
    return card


async def next_list_position(session: AsyncSession, board_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.max(BoardList.position)).where(BoardList.board_id == board_id)
    )
    last = result.scalar_one_or_none()
    return (last or 0) + 1


async def next_card_position(session: AsyncSession, list_id: uuid.UUID) -> float:
    result = await session.execute(
        select(func.max(Card.position)).where(Card.list_id == list_id)
    )
    last = result.scalar_one_or_none()
    return (last or 0) + 1


async def create_card(
    session: AsyncSession,
    card_in: CardCreate,
    board_list: BoardList,
    creator_id: uuid.UUID,
) -> Card:
    position = card_in.position
    if position is None:
        position = await next_card_position(session, board_list.id)

    card = Card(
        board_id=board_list.board_id,
        list_id=board_list.id,
        title=card_in.title.strip(),
        description=card_in.description,
        position=position,
        due_date=card_in.due_date,
        created_by=creator_id,
    )
    session.add(card)
    await session.flush()

    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=creator_id,
        action_type=ActivityType.CARD_CREATED,
        action_data={"card_title": card.title, "list_name": board_list.name},
    )
    return card


async def move_card(
    session: AsyncSession,
    card: Card,
    body: CardMove,
    actor_id: uuid.UUID,
) -> dict:
    """Move a card to a slot in a list on the same board."""
    target = await get_list_or_404(session, body.list_id)
    if target.board_id != card.board_id:
        raise HTTPException(status_code=400, detail="Target list belongs to another board")

    slot = max(int(body.position), 1)
    old_list_id = card.list_id
    old_position = card.position

    result = await session.execute(
        select(Card.position)
        .where(Card.list_id == target.id, Card.id != card.id)
        .order_by(Card.position)
    )
    siblings = list(result.scalars().all())

    # Already in the requested slot: nothing to rewrite.
    if card.list_id == target.id and _current_slot(card.position, siblings) == slot:
        return {
            "id": card.id,
            "list_id": card.list_id,
            "position": card.position,
            "old_list_id": old_list_id,
            "old_position": old_position,
            "moved": False,
        }

    new_position = compute_move_position(siblings, slot)
    source = await session.get(BoardList, old_list_id)

    card.list_id = target.id
    card.position = new_position
    card.touch()
    session.add(card)
    await session.flush()

    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=actor_id,
        action_type=ActivityType.CARD_MOVED,
        action_data={
            "card_title": card.title,
            "from_list": source.name if source else "Unknown List",
            "to_list": target.name,
            "from_list_id": str(old_list_id),
            "to_list_id": str(target.id),
        },
    )

    log.info(
        "card.moved",
        card_id=str(card.id),
        from_list=str(old_list_id),
        to_list=str(target.id),
        position=new_position,
    )
    return {
        "id": card.id,
        "list_id": card.list_id,
        "position": new_position,
        "old_list_id": old_list_id,
        "old_position": old_position,
        "moved": True,
    }


def _current_slot(position: float, siblings: list[float]) -> int:
    """1-based slot a card at ``position`` occupies among ``siblings``."""
    return sum(1 for p in siblings if p < position) + 1
