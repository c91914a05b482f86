from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query

from core.backend import Backend, get_backend
from core.exceptions import UserLookupError
from core.security import get_current_user
from models.users import UserDocument
from schemas.user_schema import UserPublic
from services.user_service import UserService

router = APIRouter()


@router.get("/me", response_model=UserDocument)
async def read_users_me(current_user: UserDocument = Depends(get_current_user)):
    return current_user


@router.get("/search", response_model=List[UserPublic])
async def search_users(
    username: str = Query(..., min_length=1),
    current_user: UserDocument = Depends(get_current_user),
    backend: Backend = Depends(get_backend),
):
    user_service = UserService(backend)
    try:
        users = await user_service.find_users_by_username(current_user.id, username)
    except UserLookupError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return [UserPublic.model_validate(user) for user in users]
