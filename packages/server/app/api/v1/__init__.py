"""
API v1 Router

All endpoints require an authenticated principal. Board-scoped and card-scoped
endpoints authorize through the shared board access policy.
"""

from fastapi import APIRouter
from . import attachments, boards, cards, checklists, invitations, lists, workspaces

router = APIRouter()

router.include_router(workspaces.router, prefix="/workspaces", tags=["Workspaces"])
router.include_router(boards.router, prefix="/boards", tags=["Boards"])
router.include_router(lists.router, prefix="/lists", tags=["Lists"])
router.include_router(cards.router, prefix="/cards", tags=["Cards"])
router.include_router(
    checklists.router, prefix="/cards/{card_id}/checklists", tags=["Checklists"]
)
router.include_router(
    attachments.router, prefix="/cards/{card_id}/attachments", tags=["Attachments"]
)
router.include_router(invitations.router, prefix="/invitations", tags=["Invitations"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/workspaces",
            "/boards",
            "/lists",
            "/cards",
            "/cards/{card_id}/checklists",
            "/cards/{card_id}/attachments",
            "/invitations",
        ],
    }
