import logging
from fastapi import APIRouter, Depends, Request, status

from core.security.carriers import REFRESH_TOKEN_CARRIERS, extract_token
from core.security.cookies import set_auth_cookies
from schemas.response import success_response
from services.user.session_store import SessionStore, get_session_store
from services.user.token import TokenService, get_token_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/v1/users', tags=['Token'])

@router.post('/refresh-token')
async def refresh_access_token(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Rotate the refresh token (cookie first, JSON body "refreshToken" as fallback)
    """
    incoming_token = await extract_token(request, REFRESH_TOKEN_CARRIERS)
    pair = await tokens.refresh(store, incoming_token)

    response = success_response(status.HTTP_200_OK, pair, "Access token refreshed")
    set_auth_cookies(response, pair)
    return response
