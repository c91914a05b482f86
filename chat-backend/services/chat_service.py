import logging
from typing import List, Optional

from core.backend import Backend
from core.exceptions import ChatExistsError
from models.chat import Chat, ChatMember
from models.users import UserDocument
from repositories.chat_repo import ChatRepository

logger = logging.getLogger(__name__)


def combine_chat_id(id_a: str, id_b: str) -> str:
    """Same id for the same two users whichever of them comes first: larger id, then smaller."""
    return id_a + id_b if id_a > id_b else id_b + id_a


def _member(user: UserDocument) -> ChatMember:
    return ChatMember(id=user.id, username=user.username, photo_url=user.photo_url)


class ChatService:
    def __init__(self, backend: Backend):
        self.repo = ChatRepository(backend.store)

    async def create_chat(self, initiator: UserDocument, target: UserDocument) -> Chat:
        """
        Create the two-party chat and add it to both users' chatRefs.

        Raises ChatExistsError when the pair already has a chat; callers should
        treat that as success and load the chat with get_chat(error.chat_id).
        """
        if initiator.id == target.id:
            raise ValueError("Cannot start a chat with yourself")

        chat_id = combine_chat_id(initiator.id, target.id)
        try:
            await self.repo.create(chat_id, _member(initiator), _member(target))
        except ChatExistsError:
            logger.warning("Chat %s already exists", chat_id)
            raise

        logger.info("Created chat %s between %s and %s", chat_id, initiator.id, target.id)
        return await self.repo.get(chat_id)

    async def get_chat(self, chat_id: str) -> Optional[Chat]:
        return await self.repo.get(chat_id)

    async def list_chats_for_user(self, user_id: str) -> List[Chat]:
        return await self.repo.list_for_user(user_id)
