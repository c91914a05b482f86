"""
Tests for ChatService: combined chat ids, transactional creation and listing.
"""
import asyncio

import pytest

from core.exceptions import ChatExistsError, DocumentNotFoundError
from repositories.user_repo import UserRepository
from services.chat_service import ChatService, combine_chat_id


class TestCombineChatId:
    @pytest.mark.parametrize("id_a,id_b", [
        ("uid-alice", "uid-bob"),
        ("B", "a"),
        ("abc", "abd"),
        ("x", "xy"),
    ])
    def test_is_commutative(self, id_a, id_b):
        assert combine_chat_id(id_a, id_b) == combine_chat_id(id_b, id_a)

    def test_larger_id_comes_first(self):
        assert combine_chat_id("aaa", "zzz") == "zzzaaa"
        assert combine_chat_id("zzz", "aaa") == "zzzaaa"

    def test_comparison_is_by_code_point(self):
        # "a" > "B" in code point order
        assert combine_chat_id("B", "a") == "aB"


@pytest.mark.anyio
class TestCreateChat:
    async def test_creates_chat_with_both_members(self, backend, alice, bob):
        chat = await ChatService(backend).create_chat(alice, bob)

        assert chat.id == combine_chat_id(alice.id, bob.id)
        assert set(chat.members) == {alice.id, bob.id}
        assert chat.members[bob.id].username == "bob"
        assert chat.members[alice.id].photo_url == alice.photo_url
        assert chat.created_at is not None
        assert chat.last_message is None

    async def test_links_chat_from_both_users(self, backend, alice, bob):
        chat = await ChatService(backend).create_chat(alice, bob)

        users = UserRepository(backend.store)
        assert (await users.get_by_id(alice.id)).chat_refs == [chat.path]
        assert (await users.get_by_id(bob.id)).chat_refs == [chat.path]

    async def test_second_create_raises_chat_exists(self, backend, alice, bob):
        service = ChatService(backend)
        await service.create_chat(alice, bob)

        with pytest.raises(ChatExistsError) as exc_info:
            await service.create_chat(bob, alice)

        assert exc_info.value.chat_id == combine_chat_id(alice.id, bob.id)
        assert len(await backend.store.query("chats")) == 1

    async def test_concurrent_creates_make_one_chat_and_one_ref_each(self, backend, alice, bob):
        service = ChatService(backend)

        results = await asyncio.gather(
            service.create_chat(alice, bob),
            service.create_chat(bob, alice),
            return_exceptions=True,
        )

        assert sum(isinstance(result, ChatExistsError) for result in results) == 1
        assert len(await backend.store.query("chats")) == 1
        users = UserRepository(backend.store)
        assert len((await users.get_by_id(alice.id)).chat_refs) == 1
        assert len((await users.get_by_id(bob.id)).chat_refs) == 1

    async def test_cannot_chat_with_yourself(self, backend, alice):
        with pytest.raises(ValueError):
            await ChatService(backend).create_chat(alice, alice)

        assert await backend.store.query("chats") == []

    async def test_missing_target_document_writes_nothing(self, backend, alice, bob):
        await UserRepository(backend.store).delete(bob.id)

        with pytest.raises(DocumentNotFoundError):
            await ChatService(backend).create_chat(alice, bob)

        assert await backend.store.query("chats") == []
        assert (await UserRepository(backend.store).get_by_id(alice.id)).chat_refs == []


@pytest.mark.anyio
class TestListChatsForUser:
    async def test_lists_chats_in_reference_order(self, backend, alice, bob, carol):
        service = ChatService(backend)
        with_bob = await service.create_chat(alice, bob)
        with_carol = await service.create_chat(carol, alice)

        chats = await service.list_chats_for_user(alice.id)

        assert [chat.id for chat in chats] == [with_bob.id, with_carol.id]
        assert [chat.id for chat in await service.list_chats_for_user(bob.id)] == [with_bob.id]

    async def test_user_without_chats_gets_empty_list(self, backend, alice):
        assert await ChatService(backend).list_chats_for_user(alice.id) == []

    async def test_dangling_references_are_skipped(self, backend, alice, bob, carol):
        service = ChatService(backend)
        kept = await service.create_chat(alice, bob)
        removed = await service.create_chat(alice, carol)
        await backend.store.delete(removed.path)

        chats = await service.list_chats_for_user(alice.id)

        assert [chat.id for chat in chats] == [kept.id]

    async def test_unknown_user_raises(self, backend):
        with pytest.raises(DocumentNotFoundError):
            await ChatService(backend).list_chats_for_user("nobody")
