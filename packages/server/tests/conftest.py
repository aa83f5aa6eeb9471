"""
Shared fixtures: a throwaway SQLite database per test and a seeded workspace.

The seeded world:
- ``owner`` owns the workspace and both boards.
- ``colleague`` is a plain workspace member.
- ``guest`` is a direct member of the private board only.
- ``stranger`` belongs to nothing.
- ``shared_board`` is workspace-visible, ``private_board`` is private.
"""

from __future__ import annotations

import os
import uuid
from types import SimpleNamespace

os.environ.setdefault("KANBAN_JWT_SECRET", "test-secret-for-kanban-tests-only-0123456789")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import create_jwt
from app.core.database import get_session
from app.main import app
from app.models.board import Board, BoardMember
from app.models.board_list import BoardList
from app.models.card import Card
from app.models.profile import Profile
from app.models.workspace import Workspace, WorkspaceMember


def auth_headers(profile_id: uuid.UUID) -> dict:
    return {"Authorization": f"Bearer {create_jwt(profile_id)}"}


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'kanban.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    """Small helpers to write and read rows outside of a request."""

    async def add(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows[0] if len(rows) == 1 else rows

    async def get(model, *key):
        async with session_factory() as session:
            return await session.get(model, key[0] if len(key) == 1 else key)

    async def update(model, key, **values):
        async with session_factory() as session:
            row = await session.get(model, key)
            for name, value in values.items():
                setattr(row, name, value)
            session.add(row)
            await session.commit()
        return row

    return SimpleNamespace(add=add, get=get, update=update, factory=session_factory)


@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def world(store):
    owner = Profile(email="owner@example.com", full_name="Olive Owner")
    colleague = Profile(email="colleague@example.com", full_name="Cole League")
    guest = Profile(email="guest@example.com", full_name="Gus Guest")
    stranger = Profile(email="stranger@example.com", full_name="Sam Stranger")
    await store.add(owner, colleague, guest, stranger)

    workspace = Workspace(name="Acme", owner_id=owner.id, settings={})
    await store.add(workspace)
    await store.add(
        WorkspaceMember(workspace_id=workspace.id, profile_id=owner.id, role="owner"),
        WorkspaceMember(workspace_id=workspace.id, profile_id=colleague.id, role="member"),
    )

    shared_board = Board(
        workspace_id=workspace.id, owner_id=owner.id, name="Roadmap", visibility="workspace"
    )
    private_board = Board(
        workspace_id=workspace.id, owner_id=owner.id, name="Secret", visibility="private"
    )
    await store.add(shared_board, private_board)
    await store.add(
        BoardMember(board_id=private_board.id, profile_id=guest.id, role="member"),
    )

    todo = BoardList(board_id=shared_board.id, name="To Do", position=1)
    done = BoardList(board_id=shared_board.id, name="Done", position=2)
    private_list = BoardList(board_id=private_board.id, name="Ideas", position=1)
    await store.add(todo, done, private_list)

    card = Card(
        board_id=shared_board.id, list_id=todo.id, title="Write docs", position=1.0,
        created_by=owner.id,
    )
    private_card = Card(
        board_id=private_board.id, list_id=private_list.id, title="Hidden", position=1.0,
        created_by=owner.id,
    )
    await store.add(card, private_card)

    return SimpleNamespace(
        owner=owner,
        colleague=colleague,
        guest=guest,
        stranger=stranger,
        workspace=workspace,
        shared_board=shared_board,
        private_board=private_board,
        todo=todo,
        done=done,
        private_list=private_list,
        card=card,
        private_card=private_card,
    )
