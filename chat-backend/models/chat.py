# chat-backend/models/chat.py
from typing import Dict, Optional
from pydantic import BaseModel, Field, model_validator
from datetime import datetime

from .messages import Message

CHATS = "chats"


def chat_path(chat_id: str) -> str:
    return f"{CHATS}/{chat_id}"


def messages_path(chat_id: str) -> str:
    return f"{CHATS}/{chat_id}/messages"


class ChatMember(BaseModel):
    """Profile snapshot taken when the chat was created."""
    id: str
    username: Optional[str] = None
    photo_url: Optional[str] = Field(alias="photoURL", default=None)

    class Config:
        populate_by_name = True


class Chat(BaseModel):
    id: str
    created_at: Optional[datetime] = Field(alias="createdAt", default=None)
    members: Dict[str, ChatMember]
    # Copy of the newest message, kept so chat lists need no subcollection read
    last_message: Optional[Message] = Field(alias="lastMessage", default=None)

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def check_members(self):
        if len(self.members) != 2:
            raise ValueError("A chat has exactly two members")
        for key, member in self.members.items():
            if key != member.id:
                raise ValueError(f"Member key {key} does not match member id {member.id}")
        return self

    @property
    def path(self) -> str:
        return chat_path(self.id)

    def has_member(self, user_id: str) -> bool:
        return user_id in self.members

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
