from fastapi import Response

from core.config import settings
from core.security.carriers import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from schemas.token import TokenPair

def _cookie_options() -> dict:
    return {
        "httponly": True,  # not readable from JS
        "secure": settings.COOKIE_SECURE,
        "path": "/",
    }

def set_auth_cookies(response: Response, pair: TokenPair) -> None:
    response.set_cookie(key=ACCESS_TOKEN_COOKIE, value=pair.access_token, **_cookie_options())
    response.set_cookie(key=REFRESH_TOKEN_COOKIE, value=pair.refresh_token, **_cookie_options())

def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(key=ACCESS_TOKEN_COOKIE, **_cookie_options())
    response.delete_cookie(key=REFRESH_TOKEN_COOKIE, **_cookie_options())
