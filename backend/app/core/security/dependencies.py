import logging
from fastapi import Depends, Request

from core.errors import Unauthorized
from core.security.carriers import ACCESS_TOKEN_CARRIERS, extract_token
from core.security.token import TokenEncoder, TokenError, get_token_encoder
from schemas.token import TokenClass
from schemas.user import UserPublic
from services.user.session_store import SessionStore, get_session_store

logger = logging.getLogger(__name__)

async def get_current_user(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    encoder: TokenEncoder = Depends(get_token_encoder),
) -> UserPublic:
    """
    Verify the inbound access token and resolve it to the current user.

    The resolved identity is also attached to request.state.user; downstream
    handlers trust it and never re-verify the token.
    """
    token = await extract_token(request, ACCESS_TOKEN_CARRIERS)
    if not token:
        raise Unauthorized("Unauthorized request")

    try:
        token_data = encoder.verify(token, TokenClass.ACCESS)
    except TokenError as e:
        # reason stays in the log; the client only learns the token is invalid
        logger.info(f"💡 Access token rejected on {request.url.path}: {type(e).__name__}: {e}")
        raise Unauthorized("Invalid access token") from e

    user = await store.get_public_user(token_data.user_id)
    if user is None:
        logger.info(f"💡 Access token subject {token_data.user_id} no longer exists")
        raise Unauthorized("Invalid access token")

    request.state.user = user
    return user
