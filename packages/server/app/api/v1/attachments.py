"""
Attachment endpoints, nested under a card.

Anyone with card access can list and add attachments. Editing or removing one
is left to its creator and to principals whose access comes with an owner or
admin role.
"""

from __future__ import annotations

import uuid
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import CurrentPrincipal, get_current_principal
from app.core.database import get_session
from app.models.attachment import CardAttachment
from app.models.board import Board
from app.models.card import Card
from app.services.access import BoardAccessPolicy, ensure_allowed, get_access_policy
from app.services.activity import record_activity
from app.services.cards import get_card_or_404
from kanban_shared.schemas.cards import (
    AttachmentCreate,
    AttachmentRead,
    AttachmentUpdate,
    detect_attachment_type,
)
from kanban_shared.schemas.common import ActivityType, BoardRole

router = APIRouter()
log = structlog.get_logger()

ATTACHMENT_MANAGER_ROLES = frozenset({BoardRole.OWNER.value, BoardRole.ADMIN.value})


def _attachment_dict(attachment: CardAttachment) -> dict:
    return {
        "id": attachment.id,
        "card_id": attachment.card_id,
        "name": attachment.filename,
        "url": attachment.file_url,
        "type": detect_attachment_type(attachment.file_url),
        "created_by": attachment.created_by,
        "created_at": attachment.created_at,
        "updated_at": attachment.updated_at,
    }


def _clean(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise HTTPException(status_code=400, detail=f"Attachment {field} is required")
    return value


async def _accessible_card(
    session: AsyncSession,
    card_id: uuid.UUID,
    principal: CurrentPrincipal,
    policy: BoardAccessPolicy,
) -> Card:
    ensure_allowed(await policy.check_card(card_id, principal.profile_id), "Card")
    return await get_card_or_404(session, card_id)


async def _get_attachment_or_404(
    session: AsyncSession, card_id: uuid.UUID, attachment_id: uuid.UUID
) -> CardAttachment:
    attachment = await session.get(CardAttachment, attachment_id)
    if not attachment or attachment.card_id != card_id:
        raise HTTPException(status_code=404, detail="Attachment not found")
    return attachment


async def _ensure_can_manage(
    session: AsyncSession,
    policy: BoardAccessPolicy,
    card: Card,
    attachment: CardAttachment,
    principal: CurrentPrincipal,
    verb: str,
) -> None:
    if attachment.created_by == principal.profile_id:
        return
    board = await session.get(Board, card.board_id)
    role = await policy.access_role(board, principal.profile_id) if board else None
    if role not in ATTACHMENT_MANAGER_ROLES:
        raise HTTPException(
            status_code=403, detail=f"You can only {verb} your own attachments"
        )


@router.get("/", response_model=List[AttachmentRead])
async def list_attachments(
    card_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Attachments on a card, newest first."""
    await _accessible_card(session, card_id, principal, policy)
    result = await session.execute(
        select(CardAttachment)
        .where(CardAttachment.card_id == card_id)
        .order_by(CardAttachment.created_at.desc())
    )
    return [_attachment_dict(a) for a in result.scalars().all()]


@router.post("/", response_model=AttachmentRead, status_code=201)
async def create_attachment(
    card_id: uuid.UUID,
    body: AttachmentCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    card = await _accessible_card(session, card_id, principal, policy)

    attachment = CardAttachment(
        card_id=card.id,
        filename=_clean(body.name, "name"),
        file_url=_clean(body.url, "url"),
        created_by=principal.profile_id,
    )
    session.add(attachment)
    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=principal.profile_id,
        action_type=ActivityType.ATTACHMENT_ADDED,
        action_data={"card_title": card.title, "attachment_name": attachment.filename},
    )
    await session.commit()
    await session.refresh(attachment)
    log.info("attachment.created", card_id=str(card.id), attachment_id=str(attachment.id))
    return _attachment_dict(attachment)


@router.patch("/{attachment_id}", response_model=AttachmentRead)
async def update_attachment(
    card_id: uuid.UUID,
    attachment_id: uuid.UUID,
    body: AttachmentUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    card = await _accessible_card(session, card_id, principal, policy)
    attachment = await _get_attachment_or_404(session, card_id, attachment_id)
    await _ensure_can_manage(session, policy, card, attachment, principal, "edit")

    if body.name is not None:
        attachment.filename = _clean(body.name, "name")
    if body.url is not None:
        attachment.file_url = _clean(body.url, "url")
    attachment.touch()
    session.add(attachment)
    await session.commit()
    await session.refresh(attachment)
    return _attachment_dict(attachment)


@router.delete("/{attachment_id}")
async def delete_attachment(
    card_id: uuid.UUID,
    attachment_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    card = await _accessible_card(session, card_id, principal, policy)
    attachment = await _get_attachment_or_404(session, card_id, attachment_id)
    await _ensure_can_manage(session, policy, card, attachment, principal, "delete")

    await session.delete(attachment)
    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=principal.profile_id,
        action_type=ActivityType.ATTACHMENT_REMOVED,
        action_data={"card_title": card.title, "attachment_name": attachment.filename},
    )
    await session.commit()
    log.info("attachment.deleted", card_id=str(card.id), attachment_id=str(attachment_id))
    return {"ok": True}
