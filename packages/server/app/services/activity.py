"""
Activity recording for boards and cards.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import Activity
from kanban_shared.schemas.common import ActivityType

log = structlog.get_logger()


async def record_activity(
    session: AsyncSession,
    *,
    board_id: uuid.UUID,
    profile_id: uuid.UUID,
    action_type: ActivityType,
    action_data: dict[str, Any],
    card_id: uuid.UUID | None = None,
) -> Activity:
    """
    Append an activity row in the caller's transaction.

    The row commits or rolls back together with the change it describes.
    """
    activity = Activity(
        board_id=board_id,
        card_id=card_id,
        profile_id=profile_id,
        action_type=action_type.value,
        action_data=action_data,
    )
    session.add(activity)
    await session.flush()

    log.debug(
        "activity.recorded",
        action_type=action_type.value,
        board_id=str(board_id),
        card_id=str(card_id) if card_id else None,
    )
    return activity
