"""
Token carriers.

A carrier pulls a raw token out of an inbound request. Endpoints declare an
ordered list of carriers; the first one that yields a token wins.
"""
import json
import logging
from typing import Awaitable, Callable, Sequence
from fastapi import Request

logger = logging.getLogger(__name__)

TokenCarrier = Callable[[Request], Awaitable[str | None]]

def from_cookie(name: str) -> TokenCarrier:
    async def extract(request: Request) -> str | None:
        return request.cookies.get(name) or None
    return extract

def from_bearer_header(header: str = "Authorization") -> TokenCarrier:
    async def extract(request: Request) -> str | None:
        value = request.headers.get(header)
        if not value:
            return None
        scheme, _, token = value.partition(" ")
        if scheme.lower() != "bearer":
            return None
        return token.strip() or None
    return extract

def from_json_body(field: str) -> TokenCarrier:
    async def extract(request: Request) -> str | None:
        if not request.headers.get("content-type", "").lower().startswith("application/json"):
            return None
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.info(f"💡 Ignoring malformed JSON body while looking for '{field}'")
            return None
        if not isinstance(body, dict):
            return None
        value = body.get(field)
        return value if isinstance(value, str) and value else None
    return extract

async def extract_token(request: Request, carriers: Sequence[TokenCarrier]) -> str | None:
    for carrier in carriers:
        token = await carrier(request)
        if token:
            return token
    return None

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

# cookie wins over the alternate carrier when both are present
ACCESS_TOKEN_CARRIERS: tuple[TokenCarrier, ...] = (
    from_cookie(ACCESS_TOKEN_COOKIE),
    from_bearer_header(),
)
REFRESH_TOKEN_CARRIERS: tuple[TokenCarrier, ...] = (
    from_cookie(REFRESH_TOKEN_COOKIE),
    from_json_body("refreshToken"),
)
