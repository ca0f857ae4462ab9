import logging
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError

from core.errors import IssuanceFailed, Unauthorized, UserNotFound
from core.security.token import TokenEncoder, TokenError, get_token_encoder
from schemas.token import TokenClass, TokenPair
from services.user.session_store import SessionStore

logger = logging.getLogger(__name__)

class TokenService:
    """
    Session token lifecycle: issue, rotate, revoke.

    The refresh token stored on the user row is the only one honored. Issuing
    a pair overwrites it, which silently retires every earlier refresh token.
    Rotation swaps the stored token with a compare-and-set UPDATE, so a given
    refresh token can be redeemed at most once even under concurrency. A login
    racing a rotation for the same user still ends as "last write wins" on
    that column; there is no extra locking.
    """

    def __init__(self, encoder: TokenEncoder):
        self.encoder = encoder

    async def issue_pair(self, store: SessionStore, user_id: int) -> TokenPair:
        """Mint a new pair and record its refresh token as the current one"""
        user = await store.get_user(user_id)
        if user is None:
            raise UserNotFound()

        access_token, refresh_token = self._mint(user_id)

        try:
            saved = await store.set_refresh_token(user_id, refresh_token)
        except SQLAlchemyError as e:
            logger.error(f"⛔ Failed to persist refresh token for user {user_id}: {e}", exc_info=True)
            raise IssuanceFailed() from e

        if not saved:
            logger.error(f"⛔ Refresh token update matched no row for user {user_id}")
            raise IssuanceFailed()

        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def _mint(self, user_id: int) -> tuple[str, str]:
        return (
            self.encoder.issue(user_id, TokenClass.ACCESS),
            self.encoder.issue(user_id, TokenClass.REFRESH),
        )

    async def refresh(self, store: SessionStore, incoming_token: str | None) -> TokenPair:
        """
        Rotate a refresh token.

        The token must verify AND be byte-identical to the one stored on the
        user. A superseded or revoked token fails even if it is unexpired.
        """
        if not incoming_token:
            raise Unauthorized()

        try:
            token_data = self.encoder.verify(incoming_token, TokenClass.REFRESH)
        except TokenError as e:
            logger.info(f"💡 Refresh token rejected: {type(e).__name__}: {e}")
            raise Unauthorized("Invalid or expired refresh token") from e

        user = await store.get_user(token_data.user_id)
        if user is None:
            logger.info(f"💡 Refresh token subject {token_data.user_id} no longer exists")
            raise Unauthorized("Invalid refresh token")

        if incoming_token != user.refresh_token:
            logger.info(f"💡 Refresh token for user {user.user_id} was already rotated or revoked")
            raise Unauthorized("Refresh token expired or used")

        access_token, refresh_token = self._mint(user.user_id)

        # no-op unless the stored token is still the incoming one
        try:
            swapped = await store.swap_refresh_token(user.user_id, incoming_token, refresh_token)
        except SQLAlchemyError as e:
            logger.error(f"⛔ Failed to rotate refresh token for user {user.user_id}: {e}", exc_info=True)
            raise IssuanceFailed() from e

        if not swapped:
            logger.info(f"💡 Refresh token for user {user.user_id} was rotated concurrently")
            raise Unauthorized("Refresh token expired or used")

        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def logout(self, store: SessionStore, user_id: int) -> None:
        await store.clear_refresh_token(user_id)
        logger.info(f"✅ Refresh token cleared for user {user_id}")

def get_token_service(encoder: TokenEncoder = Depends(get_token_encoder)) -> TokenService:
    return TokenService(encoder)
