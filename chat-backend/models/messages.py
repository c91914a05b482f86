# chat-backend/models/messages.py
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime


class Message(BaseModel):
    """chats/{chat_id}/messages/{id}; immutable once written."""
    id: str
    sender_id: str = Field(alias="senderId")
    content: str
    # Assigned by the store at commit time
    created_at: Optional[datetime] = Field(alias="createdAt", default=None)

    class Config:
        populate_by_name = True

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)
