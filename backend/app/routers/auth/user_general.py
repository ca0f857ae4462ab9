import logging
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.errors import ValidationError
from core.security.cookies import clear_auth_cookies, set_auth_cookies
from core.security.dependencies import get_current_user
from schemas.response import success_response
from schemas.user import UserCreate, UserLogin, UserPublic
from services.media.uploader import MediaUploader, get_media_uploader
from services.user.general import user_general_service
from services.user.session_store import SessionStore, get_session_store
from services.user.token import TokenService, get_token_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix='/api/v1/users', tags=['User-General'])

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(
    full_name: str = Form("", alias="fullName"),
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    avatar: UploadFile | None = File(None),
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    db: AsyncSession = Depends(get_db),
    uploader: MediaUploader = Depends(get_media_uploader),
):
    """
    Register a user.

    1. all text fields required
    2. username/email must be free
    3. avatar required, cover image optional; both go to media storage
    4. create the user and return it without secrets
    """
    user_general_service.require_fields(
        full_name=full_name, username=username, email=email, password=password
    )
    try:
        user_in = UserCreate(full_name=full_name.strip(), username=username.strip(), email=email.strip(), password=password)
    except PydanticValidationError as e:
        errors = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
        raise ValidationError("Invalid registration data", errors)

    await user_general_service.ensure_available(db, user_in.username, user_in.email)

    if avatar is None or not avatar.filename:
        raise ValidationError("Avatar file is required")

    avatar_url = await uploader.upload(avatar)
    cover_image_url = await uploader.upload(cover_image)

    if not avatar_url:
        raise ValidationError("Avatar file is required")

    user = await user_general_service.create_user(
        db=db,
        full_name=user_in.full_name,
        username=user_in.username,
        email=user_in.email,
        password=user_in.password,
        avatar=avatar_url,
        cover_image=cover_image_url,
    )
    return success_response(status.HTTP_201_CREATED, user, "User registered successfully")

@router.post("/login")
async def login_user(
    user_in: UserLogin,
    store: SessionStore = Depends(get_session_store),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Login with username or email; sets both token cookies
    """
    user = await user_general_service.authenticate(
        store, username=user_in.username, email=user_in.email, password=user_in.password
    )
    pair = await tokens.issue_pair(store, user.user_id)
    logged_in_user = await store.get_public_user(user.user_id)

    response = success_response(
        status.HTTP_200_OK,
        {
            "user": logged_in_user,
            "accessToken": pair.access_token,
            "refreshToken": pair.refresh_token,
        },
        "User logged in successfully",
    )
    set_auth_cookies(response, pair)
    return response

@router.post("/logout")
async def logout_user(
    current_user: UserPublic = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
    tokens: TokenService = Depends(get_token_service),
):
    await tokens.logout(store, current_user.user_id)

    response = success_response(status.HTTP_200_OK, {}, "User logged out")
    clear_auth_cookies(response)
    return response
