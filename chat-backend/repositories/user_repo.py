from typing import List, Optional

from core.document_store import SERVER_TIMESTAMP, DocumentStore
from models.users import USERS, UserDocument, user_path


class UserRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_by_id(self, user_id: str) -> Optional[UserDocument]:
        data = await self.store.get(user_path(user_id))
        return UserDocument.model_validate(data) if data is not None else None

    async def find_by_username(self, username: str) -> List[UserDocument]:
        documents = await self.store.query(USERS, filters={"username": username})
        return [UserDocument.model_validate(data) for data in documents]

    async def create_user(self, user_id: str, username: str, email: str, photo_url: Optional[str]) -> None:
        await self.store.set(user_path(user_id), {
            "id": user_id,
            "username": username,
            "email": email,
            "photoURL": photo_url,
            "createdAt": SERVER_TIMESTAMP,
            "chatRefs": [],
        })

    async def delete(self, user_id: str) -> None:
        await self.store.delete(user_path(user_id))
