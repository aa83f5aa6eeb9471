"""
Checklist endpoints, nested under a card.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import CurrentPrincipal, get_current_principal
from app.core.database import get_session
from app.models.checklist import Checklist, ChecklistItem
from app.services.access import BoardAccessPolicy, ensure_allowed, get_access_policy
from kanban_shared.schemas.checklists import (
    ChecklistCreate,
    ChecklistItemCreate,
    ChecklistItemRead,
    ChecklistItemUpdate,
    ChecklistRead,
    ChecklistUpdate,
)

router = APIRouter()


async def _require_card(
    card_id: uuid.UUID,
    principal: CurrentPrincipal,
    policy: BoardAccessPolicy,
) -> None:
    ensure_allowed(await policy.check_card(card_id, principal.profile_id), "Card")


async def _get_checklist_or_404(
    session: AsyncSession, card_id: uuid.UUID, checklist_id: uuid.UUID
) -> Checklist:
    checklist = await session.get(Checklist, checklist_id)
    if not checklist or checklist.card_id != card_id:
        raise HTTPException(status_code=404, detail="Checklist not found")
    return checklist


async def _get_item_or_404(
    session: AsyncSession, checklist_id: uuid.UUID, item_id: uuid.UUID
) -> ChecklistItem:
    item = await session.get(ChecklistItem, item_id)
    if not item or item.checklist_id != checklist_id:
        raise HTTPException(status_code=404, detail="Checklist item not found")
    return item


async def _items_for(
    session: AsyncSession, checklist_ids: list[uuid.UUID]
) -> dict[uuid.UUID, list[ChecklistItem]]:
    if not checklist_ids:
        return {}
    result = await session.execute(
        select(ChecklistItem)
        .where(ChecklistItem.checklist_id.in_(checklist_ids))
        .order_by(ChecklistItem.position)
    )
    grouped: dict[uuid.UUID, list[ChecklistItem]] = {}
    for item in result.scalars().all():
        grouped.setdefault(item.checklist_id, []).append(item)
    return grouped


def _checklist_dict(checklist: Checklist, items: list[ChecklistItem]) -> dict:
    return {
        "id": checklist.id,
        "card_id": checklist.card_id,
        "title": checklist.title,
        "position": checklist.position,
        "items": items,
    }


# ---------------------------------------------------------------------------
# Checklists
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[ChecklistRead])
async def list_checklists(
    card_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    result = await session.execute(
        select(Checklist).where(Checklist.card_id == card_id).order_by(Checklist.position)
    )
    checklists = list(result.scalars().all())
    items = await _items_for(session, [c.id for c in checklists])
    return [_checklist_dict(c, items.get(c.id, [])) for c in checklists]


@router.post("/", response_model=ChecklistRead, status_code=201)
async def create_checklist(
    card_id: uuid.UUID,
    body: ChecklistCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    result = await session.execute(
        select(func.max(Checklist.position)).where(Checklist.card_id == card_id)
    )
    position = (result.scalar_one_or_none() or 0) + 1

    checklist = Checklist(card_id=card_id, title=body.title.strip(), position=position)
    session.add(checklist)
    await session.commit()
    await session.refresh(checklist)
    return _checklist_dict(checklist, [])


@router.patch("/{checklist_id}", response_model=ChecklistRead)
async def update_checklist(
    card_id: uuid.UUID,
    checklist_id: uuid.UUID,
    body: ChecklistUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    checklist = await _get_checklist_or_404(session, card_id, checklist_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(checklist, key, value)
    session.add(checklist)
    await session.commit()
    await session.refresh(checklist)
    items = await _items_for(session, [checklist.id])
    return _checklist_dict(checklist, items.get(checklist.id, []))


@router.delete("/{checklist_id}")
async def delete_checklist(
    card_id: uuid.UUID,
    checklist_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    checklist = await _get_checklist_or_404(session, card_id, checklist_id)
    await session.delete(checklist)
    await session.commit()
    return {"ok": True}


# ---------------------------------------------------------------------------
# Checklist Items
# ---------------------------------------------------------------------------


@router.post("/{checklist_id}/items", response_model=ChecklistItemRead, status_code=201)
async def create_item(
    card_id: uuid.UUID,
    checklist_id: uuid.UUID,
    body: ChecklistItemCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    await _get_checklist_or_404(session, card_id, checklist_id)

    result = await session.execute(
        select(func.max(ChecklistItem.position)).where(
            ChecklistItem.checklist_id == checklist_id
        )
    )
    position = (result.scalar_one_or_none() or 0) + 1

    item = ChecklistItem(checklist_id=checklist_id, content=body.content.strip(), position=position)
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


@router.patch("/{checklist_id}/items/{item_id}", response_model=ChecklistItemRead)
async def update_item(
    card_id: uuid.UUID,
    checklist_id: uuid.UUID,
    item_id: uuid.UUID,
    body: ChecklistItemUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    await _get_checklist_or_404(session, card_id, checklist_id)
    item = await _get_item_or_404(session, checklist_id, item_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(item, key, value)
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


@router.delete("/{checklist_id}/items/{item_id}")
async def delete_item(
    card_id: uuid.UUID,
    checklist_id: uuid.UUID,
    item_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    await _get_checklist_or_404(session, card_id, checklist_id)
    item = await _get_item_or_404(session, checklist_id, item_id)
    await session.delete(item)
    await session.commit()
    return {"ok": True}
