# chat-backend/models/users.py
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from datetime import datetime

USERS = "users"


def user_path(user_id: str) -> str:
    return f"{USERS}/{user_id}"


class UserDocument(BaseModel):
    """users/{id}, keyed by the identity service uid."""
    id: str
    username: str
    email: str
    photo_url: Optional[str] = Field(alias="photoURL", default=None)
    created_at: Optional[datetime] = Field(alias="createdAt", default=None)
    # Paths of the chats this user belongs to ("chats/<id>")
    chat_refs: List[str] = Field(alias="chatRefs", default_factory=list)

    class Config:
        populate_by_name = True

    @field_validator("chat_refs")
    @classmethod
    def drop_duplicate_refs(cls, refs: List[str]) -> List[str]:
        return list(dict.fromkeys(refs))

    @property
    def path(self) -> str:
        return user_path(self.id)


class AuthPrincipal(BaseModel):
    """Signed-in account as reported by the identity service."""
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    id_token: Optional[str] = None
