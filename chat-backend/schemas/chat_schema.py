from pydantic import BaseModel, Field
from typing import List, Optional

from models.chat import Chat
from models.messages import Message


# --- Input Models ---
class ChatCreate(BaseModel):
    target_id: str


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=4000)


# --- Output Models ---
class ChatListResponse(BaseModel):
    chats: List[Chat]


class MessagePage(BaseModel):
    messages: List[Message]
    # Pass back as `before` to get the next, older page
    next_cursor: Optional[str] = None
