"""
Integration tests for lists, cards and everything hanging off a card.

Tests cover:
- Card access following the parent board
- Card moves and their activity entries
- Card members, including removing yourself after losing access
- Labels, comments, checklists and the activity feed
- Store failures surfacing as a 500 error envelope
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.main import app
from app.models.activity import Activity
from app.models.card import Card, CardMember
from app.models.label import Label
from app.models.workspace import WorkspaceMember
from app.services.access import BoardAccessPolicy, SessionAccessLookups, get_access_policy

from conftest import auth_headers


async def activities_for(store, card_id) -> list[Activity]:
    async with store.factory() as session:
        result = await session.execute(
            select(Activity).where(Activity.card_id == card_id).order_by(Activity.created_at)
        )
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------

class TestLists:
    async def test_lists_with_cards(self, client, world):
        resp = await client.get(
            "/api/v1/lists/",
            params={"board_id": str(world.shared_board.id)},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert [lst["name"] for lst in data] == ["To Do", "Done"]
        assert [c["title"] for c in data[0]["cards"]] == ["Write docs"]
        assert data[1]["cards"] == []

    async def test_create_list_appends(self, client, world):
        resp = await client.post(
            "/api/v1/lists/",
            json={"board_id": str(world.shared_board.id), "name": "Review"},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 201
        assert resp.json()["position"] == 3

    async def test_lists_need_board_access(self, client, world):
        resp = await client.get(
            "/api/v1/lists/",
            params={"board_id": str(world.private_board.id)},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------

class TestCards:
    async def test_create_card_records_activity(self, client, world, store):
        resp = await client.post(
            "/api/v1/cards/",
            json={"list_id": str(world.todo.id), "title": "Ship it"},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["board_id"] == str(world.shared_board.id)
        assert data["position"] == 2.0

        entries = await activities_for(store, uuid.UUID(data["id"]))
        assert [a.action_type for a in entries] == ["card_created"]
        assert entries[0].action_data["list_name"] == "To Do"

    async def test_card_access_follows_board(self, client, world):
        headers = auth_headers(world.colleague.id)
        assert (await client.get(f"/api/v1/cards/{world.card.id}", headers=headers)).status_code == 200

        resp = await client.get(f"/api/v1/cards/{world.private_card.id}", headers=headers)
        assert resp.status_code == 403
        assert resp.json() == {"detail": "Access denied: you cannot access this card"}

        resp = await client.get(
            f"/api/v1/cards/{world.private_card.id}", headers=auth_headers(world.guest.id)
        )
        assert resp.status_code == 200

    async def test_missing_card(self, client, world):
        resp = await client.get(f"/api/v1/cards/{uuid.uuid4()}", headers=auth_headers(world.owner.id))
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Card not found"}

    async def test_update_card(self, client, world, store):
        resp = await client.patch(
            f"/api/v1/cards/{world.card.id}",
            json={"description": "All of them"},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 200
        assert resp.json()["description"] == "All of them"

        entries = await activities_for(store, world.card.id)
        assert entries[-1].action_type == "card_updated"
        assert entries[-1].action_data["fields"] == ["description"]

    async def test_delete_card(self, client, world, store):
        resp = await client.delete(
            f"/api/v1/cards/{world.card.id}", headers=auth_headers(world.colleague.id)
        )
        assert resp.status_code == 200
        assert await store.get(Card, world.card.id) is None


class TestCardMove:
    async def test_move_to_empty_list(self, client, world, store):
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/move",
            json={"list_id": str(world.done.id), "position": 1},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["moved"] is True
        assert data["list_id"] == str(world.done.id)
        assert data["old_list_id"] == str(world.todo.id)
        assert data["position"] == 1.0

        entries = await activities_for(store, world.card.id)
        assert entries[-1].action_type == "card_moved"
        assert entries[-1].action_data["from_list"] == "To Do"
        assert entries[-1].action_data["to_list"] == "Done"

    async def test_move_between_cards(self, client, world, store):
        await store.add(
            Card(board_id=world.shared_board.id, list_id=world.done.id, title="A", position=1.0),
            Card(board_id=world.shared_board.id, list_id=world.done.id, title="B", position=2.0),
        )
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/move",
            json={"list_id": str(world.done.id), "position": 2},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.json()["position"] == 1.5

    async def test_move_to_top_with_zero(self, client, world, store):
        await store.add(
            Card(board_id=world.shared_board.id, list_id=world.done.id, title="A", position=1.0),
        )
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/move",
            json={"list_id": str(world.done.id), "position": 0},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.json()["position"] == 0.5

    async def test_fractional_slot_lands_near_top(self, client, world, store):
        await store.add(
            Card(board_id=world.shared_board.id, list_id=world.done.id, title="A", position=1.0),
            Card(board_id=world.shared_board.id, list_id=world.done.id, title="B", position=2.0),
            Card(board_id=world.shared_board.id, list_id=world.done.id, title="C", position=3.0),
        )
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/move",
            json={"list_id": str(world.done.id), "position": 1.5},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 200
        assert resp.json()["position"] == 0.5

    async def test_same_slot_is_noop(self, client, world, store):
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/move",
            json={"list_id": str(world.todo.id), "position": 1},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 200
        assert resp.json()["moved"] is False
        assert [a.action_type for a in await activities_for(store, world.card.id)] == []

    async def test_cannot_move_to_other_board(self, client, world):
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/move",
            json={"list_id": str(world.private_list.id), "position": 1},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 400

    async def test_move_needs_access(self, client, world):
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/move",
            json={"list_id": str(world.done.id), "position": 1},
            headers=auth_headers(world.stranger.id),
        )
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Card members
# ---------------------------------------------------------------------------

class TestCardMembers:
    async def test_assign_member_with_access(self, client, world):
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/members",
            json={"profile_id": str(world.colleague.id)},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 201
        assert resp.json()["full_name"] == "Cole League"

        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/members",
            json={"profile_id": str(world.colleague.id)},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 409

    async def test_assignee_needs_board_access(self, client, world):
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/members",
            json={"profile_id": str(world.stranger.id)},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 400

    async def test_remove_self_after_losing_access(self, client, world, store):
        await store.add(CardMember(card_id=world.card.id, profile_id=world.colleague.id))
        async with store.factory() as session:
            member = await session.get(WorkspaceMember, (world.workspace.id, world.colleague.id))
            await session.delete(member)
            await session.commit()

        headers = auth_headers(world.colleague.id)
        assert (await client.get(f"/api/v1/cards/{world.card.id}", headers=headers)).status_code == 403

        resp = await client.delete(
            f"/api/v1/cards/{world.card.id}/members/{world.colleague.id}", headers=headers
        )
        assert resp.status_code == 200
        assert await store.get(CardMember, world.card.id, world.colleague.id) is None

    async def test_cannot_remove_others_without_access(self, client, world, store):
        await store.add(CardMember(card_id=world.card.id, profile_id=world.colleague.id))
        resp = await client.delete(
            f"/api/v1/cards/{world.card.id}/members/{world.colleague.id}",
            headers=auth_headers(world.stranger.id),
        )
        assert resp.status_code == 403
        assert await store.get(CardMember, world.card.id, world.colleague.id) is not None

    async def test_remove_self_when_not_assigned(self, client, world):
        resp = await client.delete(
            f"/api/v1/cards/{world.card.id}/members/{world.stranger.id}",
            headers=auth_headers(world.stranger.id),
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "User is not a member of this card"

    async def test_remove_self_from_missing_card(self, client, world):
        resp = await client.delete(
            f"/api/v1/cards/{uuid.uuid4()}/members/{world.colleague.id}",
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Card not found"}


# ---------------------------------------------------------------------------
# Labels, comments, activity
# ---------------------------------------------------------------------------

class TestCardLabels:
    async def test_apply_and_remove_label(self, client, world, store):
        label = await store.add(Label(board_id=world.shared_board.id, name="Bug", color="red"))
        base = f"/api/v1/cards/{world.card.id}/labels"
        headers = auth_headers(world.colleague.id)

        resp = await client.post(base, json={"label_id": str(label.id)}, headers=headers)
        assert resp.status_code == 201
        resp = await client.post(base, json={"label_id": str(label.id)}, headers=headers)
        assert resp.status_code == 409

        resp = await client.get(base, headers=headers)
        assert [lbl["name"] for lbl in resp.json()] == ["Bug"]

        resp = await client.delete(f"{base}/{label.id}", headers=headers)
        assert resp.status_code == 200

    async def test_label_from_other_board_rejected(self, client, world, store):
        label = await store.add(Label(board_id=world.private_board.id, color="red"))
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/labels",
            json={"label_id": str(label.id)},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 400


class TestComments:
    async def test_comment_lifecycle(self, client, world, store):
        base = f"/api/v1/cards/{world.card.id}/comments"
        resp = await client.post(
            base, json={"content": " Looks good "}, headers=auth_headers(world.colleague.id)
        )
        assert resp.status_code == 201
        comment = resp.json()
        assert comment["content"] == "Looks good"
        assert comment["is_edited"] is False

        resp = await client.patch(
            f"{base}/{comment['id']}",
            json={"content": "Nope"},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 403

        resp = await client.patch(
            f"{base}/{comment['id']}",
            json={"content": "Looks great"},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.json()["is_edited"] is True

        resp = await client.get(base, headers=auth_headers(world.owner.id))
        assert [c["content"] for c in resp.json()] == ["Looks great"]

        resp = await client.delete(f"{base}/{comment['id']}", headers=auth_headers(world.colleague.id))
        assert resp.status_code == 200

        entries = await activities_for(store, world.card.id)
        assert [a.action_type for a in entries] == ["comment_added"]

    async def test_blank_comment_rejected(self, client, world):
        resp = await client.post(
            f"/api/v1/cards/{world.card.id}/comments",
            json={"content": "   "},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 400


class TestActivityFeed:
    async def test_feed_newest_first(self, client, world):
        headers = auth_headers(world.colleague.id)
        await client.patch(f"/api/v1/cards/{world.card.id}", json={"title": "Docs"}, headers=headers)
        await client.post(
            f"/api/v1/cards/{world.card.id}/move",
            json={"list_id": str(world.done.id), "position": 1},
            headers=headers,
        )
        resp = await client.get(f"/api/v1/cards/{world.card.id}/activities", headers=headers)
        assert resp.status_code == 200
        assert [a["action_type"] for a in resp.json()] == ["card_moved", "card_updated"]

    async def test_feed_needs_access(self, client, world):
        resp = await client.get(
            f"/api/v1/cards/{world.private_card.id}/activities",
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Checklists
# ---------------------------------------------------------------------------

class TestChecklists:
    async def test_checklist_lifecycle(self, client, world):
        base = f"/api/v1/cards/{world.card.id}/checklists"
        headers = auth_headers(world.colleague.id)

        resp = await client.post(base + "/", json={"title": "Steps"}, headers=headers)
        assert resp.status_code == 201
        checklist_id = resp.json()["id"]
        assert resp.json()["items"] == []

        resp = await client.post(
            f"{base}/{checklist_id}/items", json={"content": "Draft"}, headers=headers
        )
        assert resp.status_code == 201
        item_id = resp.json()["id"]
        assert resp.json()["position"] == 1

        resp = await client.patch(
            f"{base}/{checklist_id}/items/{item_id}", json={"is_completed": True}, headers=headers
        )
        assert resp.json()["is_completed"] is True

        resp = await client.get(base + "/", headers=headers)
        assert [(c["title"], len(c["items"])) for c in resp.json()] == [("Steps", 1)]

        resp = await client.delete(f"{base}/{checklist_id}/items/{item_id}", headers=headers)
        assert resp.status_code == 200
        resp = await client.delete(f"{base}/{checklist_id}", headers=headers)
        assert resp.status_code == 200

    async def test_checklists_need_access(self, client, world):
        resp = await client.get(
            f"/api/v1/cards/{world.private_card.id}/checklists/",
            headers=auth_headers(world.stranger.id),
        )
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Store failures
# ---------------------------------------------------------------------------

class TestLookupFailure:
    async def test_store_failure_returns_error_envelope(self, client, world):
        error = OperationalError("SELECT 1", {}, Exception("connection refused"))
        broken = AsyncMock()
        broken.get = AsyncMock(side_effect=error)
        broken.execute = AsyncMock(side_effect=error)

        app.dependency_overrides[get_access_policy] = lambda: BoardAccessPolicy(
            SessionAccessLookups(broken)
        )
        resp = await client.get(
            f"/api/v1/cards/{world.card.id}", headers=auth_headers(world.owner.id)
        )
        assert resp.status_code == 500
        assert resp.json() == {
            "error": {
                "code": "LOOKUP_FAILURE",
                "message": "The data store could not be reached.",
                "status": 500,
            }
        }
