from typing import List, Optional

from core.document_store import SERVER_TIMESTAMP, DocumentStore
from models.chat import chat_path, messages_path
from models.messages import Message


class MessageRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, chat_id: str, message_id: str) -> Optional[Message]:
        data = await self.store.get(f"{messages_path(chat_id)}/{message_id}")
        return Message.model_validate(data) if data is not None else None

    async def create(self, chat_id: str, message: Message) -> None:
        """Insert the message and point the chat's lastMessage at it in one batch."""
        record = {**message.to_document(), "createdAt": SERVER_TIMESTAMP}

        batch = self.store.batch()
        batch.set(f"{messages_path(chat_id)}/{message.id}", record)
        batch.update(chat_path(chat_id), {"lastMessage": record})
        await batch.commit()

    async def get_page(self, chat_id: str, limit: int, before: Optional[Message] = None) -> List[Message]:
        """Newest first; with `before`, only messages strictly older than it."""
        start_after = None
        if before is not None and before.created_at is not None:
            start_after = {"createdAt": before.created_at}

        documents = await self.store.query(
            messages_path(chat_id),
            order_by="createdAt",
            descending=True,
            limit=limit,
            start_after=start_after,
        )
        return [Message.model_validate(data) for data in documents]
