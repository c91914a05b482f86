from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from core.backend import Backend, get_backend
from core.config import MESSAGES_PAGE_SIZE
from core.exceptions import ChatExistsError, DocumentNotFoundError
from core.security import get_current_user
from models.chat import Chat
from models.messages import Message
from models.users import UserDocument
from schemas.chat_schema import ChatCreate, ChatListResponse, MessageCreate, MessagePage
from services.chat_service import ChatService
from services.message_service import MessageService
from services.user_service import UserService

router = APIRouter()


async def _member_chat(chat_id: str, current_user: UserDocument, backend: Backend) -> Chat:
    chat = await ChatService(backend).get_chat(chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    if not chat.has_member(current_user.id):
        raise HTTPException(status_code=403, detail="Not a member of this chat")
    return chat


@router.get("", response_model=ChatListResponse)
async def get_chats(
    current_user: UserDocument = Depends(get_current_user),
    backend: Backend = Depends(get_backend),
):
    """Chats of the current user (sidebar)"""
    try:
        chats = await ChatService(backend).list_chats_for_user(current_user.id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return {"chats": chats}


@router.post("", response_model=Chat, status_code=status.HTTP_201_CREATED)
async def create_chat(
    chat_in: ChatCreate,
    response: Response,
    current_user: UserDocument = Depends(get_current_user),
    backend: Backend = Depends(get_backend),
):
    """Start a chat; an existing chat for the same pair is returned with 200"""
    target = await UserService(backend).get_user_by_id(chat_in.target_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")

    service = ChatService(backend)
    try:
        return await service.create_chat(current_user, target)
    except ChatExistsError as e:
        existing = await service.get_chat(e.chat_id)
        if existing is None:
            raise HTTPException(status_code=404, detail="Chat not found")
        # Concatenated ids can collide: "ab"+"c" and "ca"+"b" are both "cab"
        if not (existing.has_member(current_user.id) and existing.has_member(target.id)):
            raise HTTPException(status_code=409, detail="Chat id already used by another pair")
        response.status_code = status.HTTP_200_OK
        return existing
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{chat_id}/messages", response_model=MessagePage)
async def get_messages(
    chat_id: str,
    limit: int = Query(MESSAGES_PAGE_SIZE, ge=1, le=100),
    before: Optional[str] = Query(None, description="Message id to page back from"),
    current_user: UserDocument = Depends(get_current_user),
    backend: Backend = Depends(get_backend),
):
    await _member_chat(chat_id, current_user, backend)
    service = MessageService(backend)

    cursor = None
    if before:
        cursor = await service.get_message(chat_id, before)
        if cursor is None:
            raise HTTPException(status_code=404, detail="Cursor message not found")

    messages = await service.fetch_messages(chat_id, limit, cursor)
    return MessagePage(messages=messages, next_cursor=messages[-1].id if messages else None)


@router.post("/{chat_id}/messages", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(
    chat_id: str,
    msg_in: MessageCreate,
    current_user: UserDocument = Depends(get_current_user),
    backend: Backend = Depends(get_backend),
):
    await _member_chat(chat_id, current_user, backend)
    try:
        return await MessageService(backend).send_message(chat_id, current_user.id, msg_in.content)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
