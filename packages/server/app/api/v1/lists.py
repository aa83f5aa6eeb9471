"""
List endpoints: the columns of a board, each holding ordered cards.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import CurrentPrincipal, get_current_principal
from app.core.database import get_session
from app.models.board_list import BoardList
from app.models.card import Card
from app.services.access import BoardAccessPolicy, ensure_allowed, get_access_policy
from app.services.cards import get_list_or_404, next_list_position
from kanban_shared.schemas.lists import ListCreate, ListRead, ListUpdate, ListWithCards

router = APIRouter()


@router.get("/", response_model=List[ListWithCards])
async def list_lists(
    board_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Lists of a board in position order, each with its cards in position order."""
    ensure_allowed(await policy.check_board(board_id, principal.profile_id), "Board")

    lists_result = await session.execute(
        select(BoardList).where(BoardList.board_id == board_id).order_by(BoardList.position)
    )
    lists = list(lists_result.scalars().all())

    cards_result = await session.execute(
        select(Card).where(Card.board_id == board_id).order_by(Card.position)
    )
    cards_by_list: dict[uuid.UUID, list[Card]] = {}
    for card in cards_result.scalars().all():
        cards_by_list.setdefault(card.list_id, []).append(card)

    return [
        {**ListRead.model_validate(lst).model_dump(), "cards": cards_by_list.get(lst.id, [])}
        for lst in lists
    ]


@router.post("/", response_model=ListRead, status_code=201)
async def create_list(
    body: ListCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    ensure_allowed(await policy.check_board(body.board_id, principal.profile_id), "Board")

    position = body.position
    if position is None:
        position = await next_list_position(session, body.board_id)

    board_list = BoardList(board_id=body.board_id, name=body.name.strip(), position=position)
    session.add(board_list)
    await session.commit()
    await session.refresh(board_list)
    return board_list


@router.patch("/{list_id}", response_model=ListRead)
async def update_list(
    list_id: uuid.UUID,
    body: ListUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    board_list = await get_list_or_404(session, list_id)
    ensure_allowed(await policy.check_board(board_list.board_id, principal.profile_id), "Board")

    update_data = body.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"]:
        update_data["name"] = update_data["name"].strip()
    for key, value in update_data.items():
        setattr(board_list, key, value)
    board_list.touch()

    session.add(board_list)
    await session.commit()
    await session.refresh(board_list)
    return board_list


@router.delete("/{list_id}")
async def delete_list(
    list_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    board_list = await get_list_or_404(session, list_id)
    ensure_allowed(await policy.check_board(board_list.board_id, principal.profile_id), "Board")
    await session.delete(board_list)
    await session.commit()
    return {"ok": True}
