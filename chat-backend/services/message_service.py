import logging
import uuid
from typing import List, Optional

from core import config
from core.backend import Backend
from models.messages import Message
from repositories.message_repo import MessageRepository

logger = logging.getLogger(__name__)


class MessageService:
    def __init__(self, backend: Backend, legacy_drop_first: Optional[bool] = None):
        self.repo = MessageRepository(backend.store)
        if legacy_drop_first is None:
            legacy_drop_first = config.LEGACY_DROP_FIRST_MESSAGE
        self.legacy_drop_first = legacy_drop_first

    async def send_message(self, chat_id: str, sender_id: str, content: str) -> Message:
        message = Message(id=str(uuid.uuid4()), sender_id=sender_id, content=content)
        await self.repo.create(chat_id, message)
        logger.info("Message %s sent to chat %s by %s", message.id, chat_id, sender_id)
        # Read back for the server-assigned createdAt
        return await self.repo.get(chat_id, message.id)

    async def get_message(self, chat_id: str, message_id: str) -> Optional[Message]:
        return await self.repo.get(chat_id, message_id)

    async def fetch_messages(self, chat_id: str, page_size: int, cursor: Optional[Message] = None) -> List[Message]:
        """
        One page of a chat's messages, newest first.

        Pass the last message of the previous page as `cursor` to get the next,
        older page. With legacy_drop_first on, the first message of every page
        is discarded, as the old browser client did.
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        messages = await self.repo.get_page(chat_id, page_size, before=cursor)
        if self.legacy_drop_first:
            messages = messages[1:]
        return messages
