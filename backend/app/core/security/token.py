import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable
from jose import JWTError, jwt

from core.config import Settings, settings
from schemas.token import TokenClass, TokenData

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class TokenError(Exception):
    """Token failed verification. Never sent to the client as-is."""

class InvalidSignature(TokenError):
    """Bad signature, malformed token or malformed claims"""

class Expired(TokenError):
    pass

class WrongClass(TokenError):
    pass

@dataclass(frozen=True)
class TokenClassConfig:
    secret: str
    ttl: timedelta

class TokenEncoder:
    """
    Issues and verifies signed, expiring JWTs for one user and one token class.

    Each class (access / refresh) has its own secret and TTL, so a token of one
    class never verifies as the other. Expiry is checked against the injected
    clock: a token whose exp equals "now" is already expired.
    """

    def __init__(
        self,
        access: TokenClassConfig,
        refresh: TokenClassConfig,
        algorithm: str = "HS256",
        clock: Clock = utc_now,
    ):
        if access.secret == refresh.secret:
            raise ValueError("access and refresh tokens must use different secrets")
        self._configs = {TokenClass.ACCESS: access, TokenClass.REFRESH: refresh}
        self._algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = utc_now) -> "TokenEncoder":
        return cls(
            access=TokenClassConfig(
                secret=settings.ACCESS_TOKEN_SECRET,
                ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            ),
            refresh=TokenClassConfig(
                secret=settings.REFRESH_TOKEN_SECRET,
                ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            ),
            algorithm=settings.JWT_ALGORITHM,
            clock=clock,
        )

    def issue(self, user_id: int, token_class: TokenClass) -> str:
        config = self._configs[token_class]
        issued_at = int(self._clock().timestamp())

        to_encode = {
            "sub": str(user_id),  # RFC 7519: sub is a string
            "type": token_class.value,
            "iat": issued_at,
            "exp": issued_at + int(config.ttl.total_seconds()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(to_encode, config.secret, algorithm=self._algorithm)

    def verify(self, token: str, token_class: TokenClass) -> TokenData:
        config = self._configs[token_class]
        try:
            payload = jwt.decode(
                token,
                config.secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as e:
            raise InvalidSignature(str(e)) from e

        if payload.get("type") != token_class.value:
            raise WrongClass(f"expected a {token_class.value} token")

        try:
            user_id = int(payload["sub"])
            issued_at = int(payload["iat"])
            expires_at = int(payload["exp"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSignature(f"malformed claims: {e}") from e

        if int(self._clock().timestamp()) >= expires_at:
            raise Expired("token has expired")

        return TokenData(
            user_id=user_id,
            token_class=token_class,
            issued_at=datetime.fromtimestamp(issued_at, timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, timezone.utc),
        )

@lru_cache()
def get_token_encoder() -> TokenEncoder:
    return TokenEncoder.from_settings(settings)
