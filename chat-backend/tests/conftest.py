"""
Shared fixtures: an in-memory backend and a few users already registered in it.

Usage:
    @pytest.mark.anyio
    async def test_example(backend, alice, bob):
        chat = await ChatService(backend).create_chat(alice, bob)
"""
import pytest

from core.backend import create_memory_backend
from repositories.user_repo import UserRepository


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def backend():
    return create_memory_backend()


async def _make_user(backend, user_id, username):
    repo = UserRepository(backend.store)
    await repo.create_user(user_id, username, f"{username}@example.com", f"https://img.example.com/{username}.png")
    return await repo.get_by_id(user_id)


@pytest.fixture
async def alice(backend):
    return await _make_user(backend, "uid-alice", "alice")


@pytest.fixture
async def bob(backend):
    return await _make_user(backend, "uid-bob", "bob")


@pytest.fixture
async def carol(backend):
    return await _make_user(backend, "uid-carol", "carol")
