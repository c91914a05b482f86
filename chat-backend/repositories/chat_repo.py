import asyncio
from typing import List, Optional

from core.document_store import SERVER_TIMESTAMP, ArrayUnion, DocumentStore, Transaction
from core.exceptions import ChatExistsError, DocumentNotFoundError
from models.chat import Chat, ChatMember, chat_path
from models.users import UserDocument, user_path


class ChatRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, chat_id: str) -> Optional[Chat]:
        data = await self.store.get(chat_path(chat_id))
        return Chat.model_validate(data) if data is not None else None

    async def create(self, chat_id: str, first: ChatMember, second: ChatMember) -> None:
        """Write the chat and link it from both users, or raise ChatExistsError and write nothing."""
        path = chat_path(chat_id)
        # Validates the member map before anything is written
        chat = Chat(id=chat_id, members={first.id: first, second.id: second})

        async def _create(transaction: Transaction):
            if await transaction.get(path) is not None:
                raise ChatExistsError(chat_id)

            transaction.set(path, {**chat.to_document(), "createdAt": SERVER_TIMESTAMP})
            # ArrayUnion keeps chatRefs free of duplicates when the transaction is retried
            transaction.update(user_path(first.id), {"chatRefs": ArrayUnion([path])})
            transaction.update(user_path(second.id), {"chatRefs": ArrayUnion([path])})

        await self.store.run_transaction(_create)

    async def list_for_user(self, user_id: str) -> List[Chat]:
        async def _list(transaction: Transaction) -> List[Chat]:
            user_data = await transaction.get(user_path(user_id))
            if user_data is None:
                raise DocumentNotFoundError(user_path(user_id))
            user = UserDocument.model_validate(user_data)

            chat_docs = await asyncio.gather(*(transaction.get(ref) for ref in user.chat_refs))
            # References to deleted chats are skipped
            return [Chat.model_validate(data) for data in chat_docs if data is not None]

        return await self.store.run_transaction(_list)
