import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="session-token-tests-")
_DB_PATH = os.path.join(_TMP_DIR, "test.db")

# must be in place before the app (and its settings) are imported
os.environ["ACCESS_TOKEN_SECRET"] = "test-access-secret"
os.environ["REFRESH_TOKEN_SECRET"] = "test-refresh-secret"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["TEMP_UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "15"
os.environ["REFRESH_TOKEN_EXPIRE_DAYS"] = "10"
os.environ["COOKIE_SECURE"] = "true"

from fastapi.testclient import TestClient  # noqa: E402

from core.config import settings  # noqa: E402
from core.security.token import TokenEncoder, get_token_encoder  # noqa: E402
from main import app  # noqa: E402
from services.media.uploader import get_media_uploader  # noqa: E402

PASSWORD = "s3cret-pass"

class FakeUploader:
    def __init__(self):
        self.fail = False
        self.uploaded = []

    async def upload(self, file):
        if file is None or not file.filename:
            return None
        if self.fail:
            return None
        self.uploaded.append(file.filename)
        return f"https://media.example.com/{file.filename}"

class FrozenClock:
    def __init__(self):
        self.now = datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

@pytest.fixture
def uploader():
    return FakeUploader()

@pytest.fixture
def client(uploader):
    app.dependency_overrides[get_media_uploader] = lambda: uploader
    with TestClient(app, base_url="https://testserver") as c:
        yield c
    app.dependency_overrides.clear()
    if os.path.exists(_DB_PATH):
        os.remove(_DB_PATH)

@pytest.fixture
def clock():
    return FrozenClock()

@pytest.fixture
def frozen_encoder(client, clock):
    encoder = TokenEncoder.from_settings(settings, clock=clock)
    app.dependency_overrides[get_token_encoder] = lambda: encoder
    return encoder

def register(client, username="alice", email="alice@mail.com", full_name="Alice Liddell",
             password=PASSWORD, avatar=True, cover_image=False):
    data = {"fullName": full_name, "username": username, "email": email, "password": password}
    files = {}
    if avatar:
        files["avatar"] = ("avatar.png", b"\x89PNG avatar", "image/png")
    if cover_image:
        files["coverImage"] = ("cover.png", b"\x89PNG cover", "image/png")
    return client.post("/api/v1/users/register", data=data, files=files or None)

def login(client, username="alice", password=PASSWORD):
    return client.post("/api/v1/users/login", json={"username": username, "password": password})

@pytest.fixture
def registered(client):
    response = register(client)
    assert response.status_code == 201, response.text
    return response.json()["data"]

@pytest.fixture
def tokens(client, registered):
    """(accessToken, refreshToken) of a fresh login; the cookie jar is left empty"""
    response = login(client)
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    client.cookies.clear()
    return data["accessToken"], data["refreshToken"]
