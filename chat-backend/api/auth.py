from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import EmailStr
from datetime import timedelta

from core.backend import Backend, get_backend
from core.config import ACCESS_TOKEN_EXPIRE_MINUTES
from core.exceptions import AuthError, StorageError
from core.security import create_access_token
from models.users import UserDocument
from services.user_service import UserService
from schemas.user_schema import TokenResponse

router = APIRouter()


@router.post("/register", response_model=UserDocument, status_code=status.HTTP_201_CREATED)
async def register(
    username: str = Form(..., min_length=1),
    email: EmailStr = Form(...),
    password: str = Form(...),
    profile_image: UploadFile = File(...),
    backend: Backend = Depends(get_backend),
):
    user_service = UserService(backend)
    image = await profile_image.read()
    try:
        principal = await user_service.register_user(
            username, email, password, image, content_type=profile_image.content_type
        )
    except AuthError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return await user_service.get_user_by_id(principal.id)


@router.post("/login", response_model=TokenResponse)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), backend: Backend = Depends(get_backend)):
    # form_data.username carries the email
    user_service = UserService(backend)
    try:
        principal = await user_service.authenticate_user(form_data.username, form_data.password)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(
        data={"sub": principal.id},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return TokenResponse(
        access_token=access_token,
        user_id=principal.id,
        display_name=principal.display_name,
        photo_url=principal.photo_url,
    )
