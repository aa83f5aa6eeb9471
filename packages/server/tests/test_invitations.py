"""
Integration tests for workspace invitations and the assignable member roster.

Tests cover:
- Issuing invitations under the membership restriction
- Duplicate, already-member and owner-role invitations being refused
- Resending (token rotation) and cancelling
- Accepting and declining, addressed by email and redeemed by token
- Expired invitations
- Available members for a workspace, optionally widened by a board
"""

from __future__ import annotations

import uuid
from datetime import timedelta

from sqlmodel import select

from app.models.base import utcnow
from app.models.invitation import Invitation
from app.models.workspace import Workspace, WorkspaceMember

from conftest import auth_headers


def invitations_url(world) -> str:
    return f"/api/v1/workspaces/{world.workspace.id}/invitations"


async def invite(store, world, email, *, role="member", expired=False, token=None):
    delta = timedelta(days=-1) if expired else timedelta(days=7)
    return await store.add(
        Invitation(
            workspace_id=world.workspace.id,
            email=email,
            role=role,
            token=token or uuid.uuid4().hex,
            invited_by=world.owner.id,
            expires_at=utcnow() + delta,
        )
    )


async def invitations_for(store, email) -> list[Invitation]:
    async with store.factory() as session:
        result = await session.execute(select(Invitation).where(Invitation.email == email))
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Issuing
# ---------------------------------------------------------------------------

class TestIssueInvitation:
    async def test_owner_invites_by_email(self, client, world, store):
        resp = await client.post(
            invitations_url(world),
            json={"email": "New.Person@Example.com", "role": "admin"},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["email"] == "new.person@example.com"
        assert data["role"] == "admin"
        assert data["invited_by"] == str(world.owner.id)
        assert data["token"]

        [stored] = await invitations_for(store, "new.person@example.com")
        assert stored.token == data["token"]
        assert stored.accepted_at is None

    async def test_follows_membership_restriction(self, client, world, store):
        body = {"email": "friend@example.com"}
        headers = auth_headers(world.colleague.id)

        resp = await client.post(invitations_url(world), json=body, headers=headers)
        assert resp.status_code == 403

        await store.update(
            Workspace, world.workspace.id, settings={"membership_restriction": "anyone"}
        )
        resp = await client.post(invitations_url(world), json=body, headers=headers)
        assert resp.status_code == 201

    async def test_non_member_cannot_invite(self, client, world):
        resp = await client.post(
            invitations_url(world),
            json={"email": "friend@example.com"},
            headers=auth_headers(world.stranger.id),
        )
        assert resp.status_code == 403

    async def test_existing_member_refused(self, client, world):
        resp = await client.post(
            invitations_url(world),
            json={"email": "Colleague@example.com"},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 409

    async def test_pending_duplicate_refused(self, client, world, store):
        await invite(store, world, "friend@example.com")
        resp = await client.post(
            invitations_url(world),
            json={"email": "friend@example.com"},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 409

    async def test_expired_leftover_is_replaced(self, client, world, store):
        old = await invite(store, world, "friend@example.com", expired=True)
        resp = await client.post(
            invitations_url(world),
            json={"email": "friend@example.com"},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 201
        assert [i.id for i in await invitations_for(store, "friend@example.com")] == [
            uuid.UUID(resp.json()["id"])
        ]
        assert await store.get(Invitation, old.id) is None

    async def test_owner_role_refused(self, client, world):
        resp = await client.post(
            invitations_url(world),
            json={"email": "friend@example.com", "role": "owner"},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 400

    async def test_invalid_email_rejected(self, client, world):
        resp = await client.post(
            invitations_url(world),
            json={"email": "not-an-email"},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Managing pending invitations
# ---------------------------------------------------------------------------

class TestManageInvitations:
    async def test_list_shows_pending_only(self, client, world, store):
        await invite(store, world, "friend@example.com")
        await invite(store, world, "late@example.com", expired=True)

        resp = await client.get(invitations_url(world), headers=auth_headers(world.colleague.id))
        assert resp.status_code == 200
        assert [i["email"] for i in resp.json()] == ["friend@example.com"]
        assert "token" not in resp.json()[0]

    async def test_list_requires_membership(self, client, world):
        resp = await client.get(invitations_url(world), headers=auth_headers(world.stranger.id))
        assert resp.status_code == 403

    async def test_resend_rotates_token(self, client, world, store):
        invitation = await invite(store, world, "late@example.com", expired=True, token="old")

        resp = await client.patch(
            f"{invitations_url(world)}/{invitation.id}", headers=auth_headers(world.owner.id)
        )
        assert resp.status_code == 200
        assert resp.json()["token"] != "old"

        stored = await store.get(Invitation, invitation.id)
        assert stored.token == resp.json()["token"]

        resp = await client.get(invitations_url(world), headers=auth_headers(world.owner.id))
        assert [i["email"] for i in resp.json()] == ["late@example.com"]

    async def test_resend_needs_invite_rights(self, client, world, store):
        invitation = await invite(store, world, "friend@example.com")
        resp = await client.patch(
            f"{invitations_url(world)}/{invitation.id}", headers=auth_headers(world.colleague.id)
        )
        assert resp.status_code == 403

    async def test_cancel(self, client, world, store):
        invitation = await invite(store, world, "friend@example.com")

        resp = await client.delete(
            f"{invitations_url(world)}/{invitation.id}", headers=auth_headers(world.owner.id)
        )
        assert resp.status_code == 200
        assert await store.get(Invitation, invitation.id) is None

    async def test_unknown_invitation(self, client, world):
        resp = await client.delete(
            f"{invitations_url(world)}/{uuid.uuid4()}", headers=auth_headers(world.owner.id)
        )
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Redeeming
# ---------------------------------------------------------------------------

class TestRedeemInvitation:
    async def test_accept_joins_with_invited_role(self, client, world, store):
        await invite(store, world, "stranger@example.com", role="admin", token="join-me")
        headers = auth_headers(world.stranger.id)

        resp = await client.get("/api/v1/invitations/", headers=headers)
        assert [i["workspace_id"] for i in resp.json()] == [str(world.workspace.id)]

        resp = await client.post(
            "/api/v1/invitations/accept", json={"token": "join-me"}, headers=headers
        )
        assert resp.status_code == 200

        member = await store.get(WorkspaceMember, world.workspace.id, world.stranger.id)
        assert member.role == "admin"

        resp = await client.get("/api/v1/invitations/", headers=headers)
        assert resp.json() == []

        resp = await client.post(
            "/api/v1/invitations/accept", json={"token": "join-me"}, headers=headers
        )
        assert resp.status_code == 404

    async def test_accept_addressed_to_someone_else(self, client, world, store):
        await invite(store, world, "stranger@example.com", token="not-yours")
        resp = await client.post(
            "/api/v1/invitations/accept",
            json={"token": "not-yours"},
            headers=auth_headers(world.guest.id),
        )
        assert resp.status_code == 403
        assert await store.get(WorkspaceMember, world.workspace.id, world.guest.id) is None

    async def test_expired_invitation_is_gone(self, client, world, store):
        await invite(store, world, "stranger@example.com", expired=True, token="too-late")
        resp = await client.post(
            "/api/v1/invitations/accept",
            json={"token": "too-late"},
            headers=auth_headers(world.stranger.id),
        )
        assert resp.status_code == 410

    async def test_unknown_token(self, client, world):
        resp = await client.post(
            "/api/v1/invitations/accept",
            json={"token": "nothing"},
            headers=auth_headers(world.stranger.id),
        )
        assert resp.status_code == 404

    async def test_decline_removes_invitation(self, client, world, store):
        invitation = await invite(store, world, "stranger@example.com", token="no-thanks")
        resp = await client.post(
            "/api/v1/invitations/decline",
            json={"token": "no-thanks"},
            headers=auth_headers(world.stranger.id),
        )
        assert resp.status_code == 200
        assert await store.get(Invitation, invitation.id) is None
        assert await store.get(WorkspaceMember, world.workspace.id, world.stranger.id) is None


# ---------------------------------------------------------------------------
# Available members
# ---------------------------------------------------------------------------

class TestAvailableMembers:
    def url(self, world) -> str:
        return f"/api/v1/workspaces/{world.workspace.id}/available-members"

    async def test_workspace_members_sorted_by_name(self, client, world):
        resp = await client.get(self.url(world), headers=auth_headers(world.colleague.id))
        assert resp.status_code == 200
        assert [(m["full_name"], m["role"]) for m in resp.json()] == [
            ("Cole League", "member"),
            ("Olive Owner", "owner"),
        ]

    async def test_board_widens_roster(self, client, world):
        resp = await client.get(
            self.url(world),
            params={"board_id": str(world.private_board.id)},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 200
        assert [m["full_name"] for m in resp.json()] == ["Cole League", "Gus Guest", "Olive Owner"]

    async def test_board_needs_access(self, client, world):
        resp = await client.get(
            self.url(world),
            params={"board_id": str(world.private_board.id)},
            headers=auth_headers(world.colleague.id),
        )
        assert resp.status_code == 403

    async def test_board_from_elsewhere_not_found(self, client, world):
        resp = await client.get(
            self.url(world),
            params={"board_id": str(uuid.uuid4())},
            headers=auth_headers(world.owner.id),
        )
        assert resp.status_code == 404

    async def test_requires_membership(self, client, world):
        resp = await client.get(self.url(world), headers=auth_headers(world.stranger.id))
        assert resp.status_code == 403
