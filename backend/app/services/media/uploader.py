import hashlib
import logging
import os
import shutil
import time
import uuid
import httpx
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from core.config import settings

logger = logging.getLogger(__name__)

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"

class MediaUploader:
    """
    Uploads incoming files to Cloudinary and returns a durable URL.

    The file is first written under TEMP_UPLOAD_DIR; the local copy is always
    removed afterwards, whether the upload succeeded or not.
    """

    def __init__(
        self,
        cloud_name: str | None = settings.CLOUDINARY_CLOUD_NAME,
        api_key: str | None = settings.CLOUDINARY_API_KEY,
        api_secret: str | None = settings.CLOUDINARY_API_SECRET,
        temp_dir: str = settings.TEMP_UPLOAD_DIR,
        timeout: float = settings.MEDIA_UPLOAD_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.temp_dir = temp_dir
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    async def upload(self, file: UploadFile | None) -> str | None:
        if file is None or not file.filename:
            return None

        local_path = await self._save_temp(file)
        try:
            return await self.upload_path(local_path)
        finally:
            if os.path.exists(local_path):
                os.remove(local_path)

    async def upload_path(self, local_path: str) -> str | None:
        if not self.configured:
            logger.warning("⚠️ Media upload is not configured (CLOUDINARY_* settings missing)")
            return None

        params = {"timestamp": str(int(time.time()))}
        data = {**params, "api_key": self.api_key, "signature": self._sign(params)}
        url = CLOUDINARY_UPLOAD_URL.format(cloud_name=self.cloud_name)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                with open(local_path, "rb") as fh:
                    response = await client.post(
                        url,
                        data=data,
                        files={"file": (os.path.basename(local_path), fh)},
                    )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPError as e:
            logger.error(f"⛔ Media upload failed: {e}", exc_info=True)
            return None

        secure_url = result.get("secure_url") or result.get("url")
        if not secure_url:
            logger.warning("⚠️ Media upload response carried no URL")
            return None
        return secure_url

    def _sign(self, params: dict[str, str]) -> str:
        to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    async def _save_temp(self, file: UploadFile) -> str:
        os.makedirs(self.temp_dir, exist_ok=True)
        _, ext = os.path.splitext(file.filename or "")
        local_path = os.path.join(self.temp_dir, f"{uuid.uuid4().hex}{ext}")
        await file.seek(0)
        await run_in_threadpool(_copy_to_path, file.file, local_path)
        return local_path

def _copy_to_path(source, local_path: str) -> None:
    with open(local_path, "wb") as out:
        shutil.copyfileobj(source, out)

media_uploader = MediaUploader()

def get_media_uploader() -> MediaUploader:
    return media_uploader
