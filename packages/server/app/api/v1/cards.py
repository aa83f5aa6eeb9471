"""
Card endpoints: CRUD, moves, members, labels, comments, activity.

Card access is exactly the parent board's access. The one override: a
principal can always take themselves off a card, even after losing access to
the board.
"""

from __future__ import annotations

import uuid
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import CurrentPrincipal, get_current_principal
from app.core.config import get_settings
from app.core.database import get_session
from app.models.activity import Activity
from app.models.card import Card, CardMember
from app.models.comment import Comment
from app.models.label import CardLabel, Label
from app.models.profile import Profile
from app.services.access import BoardAccessPolicy, ensure_allowed, get_access_policy
from app.services.activity import record_activity
from app.services.cards import create_card, get_card_or_404, get_list_or_404, move_card
from kanban_shared.schemas.boards import LabelRead
from kanban_shared.schemas.cards import (
    ActivityRead,
    CardCreate,
    CardLabelAdd,
    CardMemberAdd,
    CardMemberRead,
    CardMove,
    CardMoveResult,
    CardRead,
    CardUpdate,
    CommentCreate,
    CommentRead,
)
from kanban_shared.schemas.common import ActivityType

router = APIRouter()
log = structlog.get_logger()
settings = get_settings()


async def _require_card(
    card_id: uuid.UUID,
    principal: CurrentPrincipal,
    policy: BoardAccessPolicy,
) -> None:
    ensure_allowed(await policy.check_card(card_id, principal.profile_id), "Card")


# ---------------------------------------------------------------------------
# Card CRUD
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[CardRead])
async def list_cards(
    list_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    board_list = await get_list_or_404(session, list_id)
    ensure_allowed(await policy.check_board(board_list.board_id, principal.profile_id), "Board")
    result = await session.execute(
        select(Card).where(Card.list_id == list_id).order_by(Card.position)
    )
    return list(result.scalars().all())


@router.post("/", response_model=CardRead, status_code=201)
async def create_card_endpoint(
    body: CardCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    board_list = await get_list_or_404(session, body.list_id)
    ensure_allowed(await policy.check_board(board_list.board_id, principal.profile_id), "Board")

    card = await create_card(session, body, board_list, principal.profile_id)
    await session.commit()
    await session.refresh(card)
    return card


@router.get("/{card_id}", response_model=CardRead)
async def get_card(
    card_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    return await get_card_or_404(session, card_id)


@router.patch("/{card_id}", response_model=CardRead)
async def update_card(
    card_id: uuid.UUID,
    body: CardUpdate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    card = await get_card_or_404(session, card_id)

    update_data = body.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(card, key, value)
    card.touch()
    session.add(card)

    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=principal.profile_id,
        action_type=ActivityType.CARD_UPDATED,
        action_data={"card_title": card.title, "fields": sorted(update_data)},
    )
    await session.commit()
    await session.refresh(card)
    return card


@router.delete("/{card_id}")
async def delete_card(
    card_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    card = await get_card_or_404(session, card_id)
    await session.delete(card)
    await session.commit()
    log.info("card.deleted", card_id=str(card_id), by=str(principal.profile_id))
    return {"ok": True}


@router.post("/{card_id}/move", response_model=CardMoveResult)
async def move_card_endpoint(
    card_id: uuid.UUID,
    body: CardMove,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Move a card to a 1-based slot in a list (0 also means the top)."""
    await _require_card(card_id, principal, policy)
    card = await get_card_or_404(session, card_id)
    result = await move_card(session, card, body, principal.profile_id)
    await session.commit()
    return result


# ---------------------------------------------------------------------------
# Card Members
# ---------------------------------------------------------------------------


async def _card_members(session: AsyncSession, card_id: uuid.UUID) -> list[dict]:
    result = await session.execute(
        select(CardMember, Profile)
        .join(Profile, Profile.id == CardMember.profile_id)
        .where(CardMember.card_id == card_id)
        .order_by(CardMember.created_at)
    )
    return [
        {
            "profile_id": member.profile_id,
            "full_name": profile.full_name,
            "email": profile.email,
            "avatar_url": profile.avatar_url,
            "created_at": member.created_at,
        }
        for member, profile in result.all()
    ]


async def _get_card_member(
    session: AsyncSession, card_id: uuid.UUID, profile_id: uuid.UUID
) -> CardMember | None:
    result = await session.execute(
        select(CardMember).where(
            CardMember.card_id == card_id,
            CardMember.profile_id == profile_id,
        )
    )
    return result.scalar_one_or_none()


@router.get("/{card_id}/members", response_model=List[CardMemberRead])
async def list_card_members(
    card_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    return await _card_members(session, card_id)


@router.post("/{card_id}/members", response_model=CardMemberRead, status_code=201)
async def add_card_member(
    card_id: uuid.UUID,
    body: CardMemberAdd,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Assign a profile to a card. The assignee must be able to see the board."""
    await _require_card(card_id, principal, policy)
    card = await get_card_or_404(session, card_id)

    profile = await session.get(Profile, body.profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    if not await policy.has_card_access(card_id, body.profile_id):
        raise HTTPException(status_code=400, detail="Profile has no access to this board")
    if await _get_card_member(session, card_id, body.profile_id):
        raise HTTPException(status_code=409, detail="User is already a member of this card")

    member = CardMember(card_id=card_id, profile_id=body.profile_id, assigned_by=principal.profile_id)
    session.add(member)
    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=principal.profile_id,
        action_type=ActivityType.MEMBER_ADDED,
        action_data={
            "card_title": card.title,
            "member_id": str(body.profile_id),
            "member_name": profile.full_name,
        },
    )
    await session.commit()

    return {
        "profile_id": profile.id,
        "full_name": profile.full_name,
        "email": profile.email,
        "avatar_url": profile.avatar_url,
        "created_at": member.created_at,
    }


@router.delete("/{card_id}/members/{profile_id}")
async def remove_card_member(
    card_id: uuid.UUID,
    profile_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member from a card. Removing yourself is always permitted."""
    decision = await policy.check_card_member_removal(card_id, principal.profile_id, profile_id)
    ensure_allowed(decision, "Card")
    card = await get_card_or_404(session, card_id)

    member = await _get_card_member(session, card_id, profile_id)
    if not member:
        raise HTTPException(status_code=404, detail="User is not a member of this card")

    await session.delete(member)
    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=principal.profile_id,
        action_type=ActivityType.MEMBER_REMOVED,
        action_data={"card_title": card.title, "member_id": str(profile_id)},
    )
    await session.commit()
    return {"ok": True}


# ---------------------------------------------------------------------------
# Card Labels
# ---------------------------------------------------------------------------


@router.get("/{card_id}/labels", response_model=List[LabelRead])
async def list_card_labels(
    card_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    result = await session.execute(
        select(Label)
        .join(CardLabel, CardLabel.label_id == Label.id)
        .where(CardLabel.card_id == card_id)
        .order_by(Label.name)
    )
    return list(result.scalars().all())


@router.post("/{card_id}/labels", response_model=LabelRead, status_code=201)
async def add_card_label(
    card_id: uuid.UUID,
    body: CardLabelAdd,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    card = await get_card_or_404(session, card_id)

    label = await session.get(Label, body.label_id)
    if not label or label.board_id != card.board_id:
        raise HTTPException(status_code=400, detail="Label does not belong to this board")

    existing = await session.get(CardLabel, (card_id, label.id))
    if existing:
        raise HTTPException(status_code=409, detail="Label already applied to this card")

    session.add(CardLabel(card_id=card_id, label_id=label.id))
    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=principal.profile_id,
        action_type=ActivityType.LABEL_ADDED,
        action_data={"card_title": card.title, "label_name": label.name, "label_color": label.color},
    )
    await session.commit()
    return label


@router.delete("/{card_id}/labels/{label_id}")
async def remove_card_label(
    card_id: uuid.UUID,
    label_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    card = await get_card_or_404(session, card_id)

    card_label = await session.get(CardLabel, (card_id, label_id))
    if not card_label:
        raise HTTPException(status_code=404, detail="Label not applied to this card")

    await session.delete(card_label)
    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=principal.profile_id,
        action_type=ActivityType.LABEL_REMOVED,
        action_data={"card_title": card.title, "label_id": str(label_id)},
    )
    await session.commit()
    return {"ok": True}


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


async def _get_comment_or_404(
    session: AsyncSession, card_id: uuid.UUID, comment_id: uuid.UUID
) -> Comment:
    comment = await session.get(Comment, comment_id)
    if not comment or comment.card_id != card_id:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


@router.get("/{card_id}/comments", response_model=List[CommentRead])
async def list_comments(
    card_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Comments on a card, newest first."""
    await _require_card(card_id, principal, policy)
    result = await session.execute(
        select(Comment).where(Comment.card_id == card_id).order_by(Comment.created_at.desc())
    )
    return list(result.scalars().all())


@router.post("/{card_id}/comments", response_model=CommentRead, status_code=201)
async def create_comment(
    card_id: uuid.UUID,
    body: CommentCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    card = await get_card_or_404(session, card_id)

    content = body.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Comment content is required")

    comment = Comment(card_id=card_id, profile_id=principal.profile_id, content=content)
    session.add(comment)
    await record_activity(
        session,
        board_id=card.board_id,
        card_id=card.id,
        profile_id=principal.profile_id,
        action_type=ActivityType.COMMENT_ADDED,
        action_data={"card_title": card.title},
    )
    await session.commit()
    await session.refresh(comment)
    return comment


@router.patch("/{card_id}/comments/{comment_id}", response_model=CommentRead)
async def update_comment(
    card_id: uuid.UUID,
    comment_id: uuid.UUID,
    body: CommentCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Edit a comment. Only its author may."""
    await _require_card(card_id, principal, policy)
    comment = await _get_comment_or_404(session, card_id, comment_id)
    if comment.profile_id != principal.profile_id:
        raise HTTPException(status_code=403, detail="You can only edit your own comments")

    content = body.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Comment content is required")

    comment.content = content
    comment.is_edited = True
    comment.touch()
    session.add(comment)
    await session.commit()
    await session.refresh(comment)
    return comment


@router.delete("/{card_id}/comments/{comment_id}")
async def delete_comment(
    card_id: uuid.UUID,
    comment_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    await _require_card(card_id, principal, policy)
    comment = await _get_comment_or_404(session, card_id, comment_id)
    if comment.profile_id != principal.profile_id:
        raise HTTPException(status_code=403, detail="You can only delete your own comments")

    await session.delete(comment)
    await session.commit()
    return {"ok": True}


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


@router.get("/{card_id}/activities", response_model=List[ActivityRead])
async def list_card_activities(
    card_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(get_current_principal),
    policy: BoardAccessPolicy = Depends(get_access_policy),
    session: AsyncSession = Depends(get_session),
):
    """Most recent activity on a card, newest first."""
    await _require_card(card_id, principal, policy)
    result = await session.execute(
        select(Activity)
        .where(Activity.card_id == card_id)
        .order_by(Activity.created_at.desc())
        .limit(settings.activity_page_size)
    )
    return list(result.scalars().all())
