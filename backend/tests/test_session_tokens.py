import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from core.config import settings
from core.errors import IssuanceFailed, Unauthorized, UserNotFound
from core.security.token import TokenClassConfig, TokenEncoder
from schemas.token import TokenClass, TokenPair
from services.user.session_store import SessionStore
from services.user.token import TokenService

from conftest import login

ME = "/api/v1/users/me"
REFRESH = "/api/v1/users/refresh-token"
LOGOUT = "/api/v1/users/logout"

def bearer(token):
    return {"Authorization": f"Bearer {token}"}

# --- verifier ---

def test_access_token_resolves_to_the_same_user(client, registered, tokens):
    access_token, _ = tokens
    response = client.get(ME, headers=bearer(access_token))

    assert response.status_code == 200
    user = response.json()["data"]
    assert user["user_id"] == registered["user_id"]
    assert "hashed_password" not in user
    assert "refresh_token" not in user

def test_access_token_cookie_is_accepted(client, registered):
    login(client)
    response = client.get(ME)
    assert response.status_code == 200
    assert response.json()["data"]["username"] == "alice"

def test_cookie_takes_precedence_over_header(client, tokens):
    access_token, _ = tokens

    client.cookies.set("accessToken", access_token)
    assert client.get(ME, headers=bearer("garbage")).status_code == 200

    client.cookies.set("accessToken", "garbage")
    assert client.get(ME, headers=bearer(access_token)).status_code == 401

def test_missing_access_token_is_unauthorized(client):
    response = client.get(ME)
    assert response.status_code == 401
    assert response.json() == {
        "statusCode": 401,
        "success": False,
        "message": "Unauthorized request",
        "errors": [],
    }

def test_non_bearer_authorization_is_ignored(client, tokens):
    access_token, _ = tokens
    response = client.get(ME, headers={"Authorization": f"Basic {access_token}"})
    assert response.status_code == 401

def test_refresh_token_is_rejected_by_verifier(client, tokens):
    _, refresh_token = tokens
    response = client.get(ME, headers=bearer(refresh_token))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid access token"

def test_wrong_secret_token_is_unauthorized(client, registered):
    forger = TokenEncoder(
        access=TokenClassConfig(secret="not-our-secret", ttl=timedelta(minutes=5)),
        refresh=TokenClassConfig(secret="also-not-ours", ttl=timedelta(days=1)),
    )
    token = forger.issue(registered["user_id"], TokenClass.ACCESS)

    response = client.get(ME, headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid access token"

def test_token_for_missing_user_is_unauthorized(client, registered):
    token = TokenEncoder.from_settings(settings).issue(registered["user_id"] + 1000, TokenClass.ACCESS)
    response = client.get(ME, headers=bearer(token))
    assert response.status_code == 401

def test_access_token_expiry_boundary(client, frozen_encoder, clock, tokens):
    access_token, _ = tokens
    ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    clock.advance(seconds=ttl.total_seconds() - 1)
    assert client.get(ME, headers=bearer(access_token)).status_code == 200

    clock.advance(seconds=1)
    assert client.get(ME, headers=bearer(access_token)).status_code == 401

# --- rotation ---

def test_refresh_rotates_and_rejects_replay(client, tokens):
    a1, r1 = tokens

    response = client.post(REFRESH, json={"refreshToken": r1})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    a2, r2 = body["data"]["accessToken"], body["data"]["refreshToken"]
    assert a2 != a1
    assert r2 != r1

    client.cookies.clear()
    replay = client.post(REFRESH, json={"refreshToken": r1})
    assert replay.status_code == 401
    assert replay.json()["message"] == "Refresh token expired or used"

    # the chain continues from the newest token
    assert client.post(REFRESH, json={"refreshToken": r2}).status_code == 200

def test_refreshed_access_token_authenticates(client, registered, tokens):
    _, r1 = tokens
    a2 = client.post(REFRESH, json={"refreshToken": r1}).json()["data"]["accessToken"]

    response = client.get(ME, headers=bearer(a2))
    assert response.status_code == 200
    assert response.json()["data"]["user_id"] == registered["user_id"]

def test_refresh_via_cookie_sets_new_cookies(client, registered):
    login(client)
    old_refresh = client.cookies.get("refreshToken")

    response = client.post(REFRESH)
    assert response.status_code == 200
    new_refresh = response.json()["data"]["refreshToken"]
    assert new_refresh != old_refresh
    assert client.cookies.get("refreshToken") == new_refresh

def test_refresh_cookie_takes_precedence_over_body(client, tokens):
    _, r1 = tokens
    client.cookies.set("refreshToken", "garbage")
    response = client.post(REFRESH, json={"refreshToken": r1})
    assert response.status_code == 401

def test_refresh_without_token_is_unauthorized(client):
    response = client.post(REFRESH)
    assert response.status_code == 401
    assert response.json()["message"] == "Unauthorized request"

def test_access_token_is_rejected_by_refresh(client, tokens):
    access_token, _ = tokens
    response = client.post(REFRESH, json={"refreshToken": access_token})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired refresh token"

def test_refresh_for_missing_user_is_unauthorized(client, registered):
    token = TokenEncoder.from_settings(settings).issue(registered["user_id"] + 1000, TokenClass.REFRESH)
    response = client.post(REFRESH, json={"refreshToken": token})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token"

def test_second_login_supersedes_first_refresh_token(client, tokens):
    _, r1 = tokens
    login(client)
    client.cookies.clear()

    response = client.post(REFRESH, json={"refreshToken": r1})
    assert response.status_code == 401
    assert response.json()["message"] == "Refresh token expired or used"

def test_refresh_token_expiry_boundary(client, frozen_encoder, clock, tokens):
    _, r1 = tokens
    ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    clock.advance(seconds=ttl.total_seconds() - 1)
    response = client.post(REFRESH, json={"refreshToken": r1})
    assert response.status_code == 200
    r2 = response.json()["data"]["refreshToken"]
    client.cookies.clear()

    clock.advance(seconds=ttl.total_seconds())
    expired = client.post(REFRESH, json={"refreshToken": r2})
    assert expired.status_code == 401
    assert expired.json()["message"] == "Invalid or expired refresh token"

# --- logout ---

def test_logout_revokes_refresh_token(client, tokens):
    access_token, r1 = tokens

    response = client.post(LOGOUT, headers=bearer(access_token))
    assert response.status_code == 200
    assert response.json()["data"] == {}
    assert response.json()["message"] == "User logged out"

    cookies = response.headers.get_list("set-cookie")
    for name in ("accessToken", "refreshToken"):
        header = next(c for c in cookies if c.startswith(f"{name}="))
        assert "max-age=0" in header.lower()

    client.cookies.clear()
    replay = client.post(REFRESH, json={"refreshToken": r1})
    assert replay.status_code == 401
    assert replay.json()["message"] == "Refresh token expired or used"

def test_logout_requires_authentication(client):
    assert client.post(LOGOUT).status_code == 401

# --- concurrency ---

async def _redeem_twice(refresh_token):
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    sessions = async_sessionmaker(engine, expire_on_commit=False)
    service = TokenService(TokenEncoder.from_settings(settings))
    try:
        async with sessions() as first, sessions() as second:
            return await asyncio.gather(
                service.refresh(SessionStore(first), refresh_token),
                service.refresh(SessionStore(second), refresh_token),
                return_exceptions=True,
            )
    finally:
        await engine.dispose()

def test_concurrent_refresh_with_same_token_succeeds_once(client, tokens):
    _, r1 = tokens

    results = asyncio.run(_redeem_twice(r1))

    pairs = [r for r in results if isinstance(r, TokenPair)]
    rejected = [r for r in results if isinstance(r, Unauthorized)]
    assert len(pairs) == 1, results
    assert len(rejected) == 1, results
    assert rejected[0].message == "Refresh token expired or used"

    # only the winner's token carries the session forward
    assert client.post(REFRESH, json={"refreshToken": r1}).status_code == 401
    assert client.post(REFRESH, json={"refreshToken": pairs[0].refresh_token}).status_code == 200

# --- issuance failures ---

ISSUANCE_FAILED = {
    "statusCode": 500,
    "success": False,
    "message": "Something went wrong while generating access token and refresh token",
    "errors": [],
}

def test_login_reports_storage_error_while_saving_refresh_token(client, registered, monkeypatch):
    async def broken(self, user_id, token):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(SessionStore, "set_refresh_token", broken)

    response = login(client)
    assert response.status_code == 500
    assert response.json() == ISSUANCE_FAILED
    assert "accessToken" not in client.cookies

def test_login_reports_refresh_token_update_matching_no_row(client, registered, monkeypatch):
    async def missed(self, user_id, token):
        return False

    monkeypatch.setattr(SessionStore, "set_refresh_token", missed)

    response = login(client)
    assert response.status_code == 500
    assert response.json() == ISSUANCE_FAILED

def test_refresh_reports_storage_error_while_rotating(client, tokens, monkeypatch):
    _, r1 = tokens

    async def broken(self, user_id, expected, token):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(SessionStore, "swap_refresh_token", broken)

    response = client.post(REFRESH, json={"refreshToken": r1})
    assert response.status_code == 500
    assert response.json() == ISSUANCE_FAILED

class EmptyStore:
    async def get_user(self, user_id):
        return None

    async def set_refresh_token(self, user_id, token):
        raise AssertionError("nothing to persist for a missing user")

def test_issue_pair_for_missing_user():
    service = TokenService(TokenEncoder.from_settings(settings))
    with pytest.raises(UserNotFound):
        asyncio.run(service.issue_pair(EmptyStore(), 999))

def test_issue_pair_storage_error_is_issuance_failure():
    class BrokenStore(EmptyStore):
        async def get_user(self, user_id):
            return object()

        async def set_refresh_token(self, user_id, token):
            raise SQLAlchemyError("disk I/O error")

    service = TokenService(TokenEncoder.from_settings(settings))
    with pytest.raises(IssuanceFailed):
        asyncio.run(service.issue_pair(BrokenStore(), 1))
