# Client for Cloudinary image assets (download for attachments, signed destroy)
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from case_review_service.app.config import AppSettings, settings as app_settings
from case_review_service.app.service.exceptions import AssetStorageError

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE_URL = "https://api.cloudinary.com/v1_1"
CLOUDINARY_DELIVERY_BASE_URL = "https://res.cloudinary.com"


@dataclass(frozen=True)
class DownloadedAsset:
    data: bytes
    content_type: str


class CloudinaryClient:
    def __init__(self, http_client: httpx.AsyncClient, settings: AppSettings = app_settings):
        self.http_client = http_client
        self.settings = settings

    def _require_config(self):
        missing = [
            name for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
            if not getattr(self.settings, name)
        ]
        if missing:
            raise AssetStorageError(f"Cloudinary is not configured. Missing: {', '.join(missing)}")

    def asset_url(self, public_id_or_url: str) -> str:
        if public_id_or_url.startswith("http"):
            return public_id_or_url
        self._require_config()
        return f"{CLOUDINARY_DELIVERY_BASE_URL}/{self.settings.CLOUDINARY_CLOUD_NAME}/image/upload/{public_id_or_url}"

    async def fetch_asset(self, public_id_or_url: str) -> DownloadedAsset:
        url = self.asset_url(public_id_or_url)
        try:
            response = await self.http_client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Failed to download asset {url}: {e.response.status_code}")
            raise AssetStorageError(f"Failed to download asset: {e.response.status_code}")
        except httpx.RequestError as e:
            logger.error(f"Request error downloading asset {url}: {e}", exc_info=True)
            raise AssetStorageError(f"Failed to download asset: {e}")
        content_type = response.headers.get("content-type", "application/octet-stream").split(";")[0].strip()
        return DownloadedAsset(data=response.content, content_type=content_type or "application/octet-stream")

    def _signature(self, params: dict) -> str:
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.settings.CLOUDINARY_API_SECRET}".encode("utf-8")).hexdigest()

    async def delete_asset(self, public_id: str, timestamp: Optional[int] = None) -> bool:
        """
        Destroys an uploaded image and invalidates CDN copies.

        Failures are logged and reported as False; a deleted case is never restored
        because its assets could not be removed.
        """
        try:
            self._require_config()
        except AssetStorageError as e:
            logger.error(f"Cannot delete asset {public_id}: {e}")
            return False
        params = {"invalidate": "true", "public_id": public_id, "timestamp": str(timestamp or int(time.time()))}
        form = {**params, "api_key": self.settings.CLOUDINARY_API_KEY, "signature": self._signature(params)}
        url = f"{CLOUDINARY_API_BASE_URL}/{self.settings.CLOUDINARY_CLOUD_NAME}/image/destroy"
        try:
            response = await self.http_client.post(url, data=form)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Failed to delete Cloudinary asset {public_id}: {e.response.status_code} - {e.response.text}")
            return False
        except httpx.RequestError as e:
            logger.error(f"Request error deleting Cloudinary asset {public_id}: {e}", exc_info=True)
            return False
        try:
            result = response.json().get("result")
        except (ValueError, AttributeError):
            logger.error(f"Cloudinary destroy for {public_id} returned an unexpected body: {response.text[:200]}")
            return False
        if result != "ok":
            logger.warning(f"Cloudinary destroy for {public_id} returned result={result!r}.")
            return False
        logger.info(f"Cloudinary asset {public_id} deleted.")
        return True


def get_cloudinary_client(request: Request) -> CloudinaryClient:
    return request.app.state.cloudinary_client
