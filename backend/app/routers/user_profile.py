from fastapi import APIRouter, Depends, status

from core.security.dependencies import get_current_user
from schemas.response import success_response
from schemas.user import UserPublic

router = APIRouter(
    prefix="/api/v1/users",
    tags=["User-Profile"],
)

@router.get("/me")
async def read_users_me(current_user: UserPublic = Depends(get_current_user)):
    """Current user, as resolved from the access token"""
    return success_response(status.HTTP_200_OK, current_user, "Current user fetched successfully")
