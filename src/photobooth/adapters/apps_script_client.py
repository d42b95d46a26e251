"""Apps Script backend client for the spreadsheet-backed gallery store."""

import json
import logging
import time
from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import ValidationError

from photobooth.domain.gallery import GalleryItem

_logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when the gallery store answers with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GalleryStore(Protocol):
    """Interface for the external gallery store."""

    async def fetch_gallery(self, event_id: str | None = None) -> list[GalleryItem]:
        """Return every gallery row, optionally scoped to an event."""

    async def update_video_status(
        self,
        photo_id: str,
        status: str,
        *,
        task_id: str | None = None,
        extra: dict[str, object] | None = None,
    ) -> None:
        """Write a video status for a row."""

    async def upload_generated_video(
        self, *, video_data_url: str, folder_id: str | None, related_photo_id: str
    ) -> None:
        """Store a finished video and link it to its photo row."""

    async def delete_photo(self, photo_id: str, pin: str) -> dict[str, object]:
        """Delete one row; returns the backend's `{ok, error}` payload."""

    async def delete_all_photos(self, pin: str) -> dict[str, object]:
        """Delete every row; returns the backend's `{ok, error}` payload."""

    async def fetch_image_base64(self, file_id: str) -> str | None:
        """Return a stored image as a base64 data URL."""


@dataclass
class HttpxAppsScriptClient(GalleryStore):
    """Gallery store reached through an Apps Script web app."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxAppsScriptClient":
        """Create a store client; Apps Script answers POSTs with a redirect."""
        return cls(
            base_url=base_url,
            http_client=httpx.AsyncClient(follow_redirects=True),
        )

    async def fetch_gallery(self, event_id: str | None = None) -> list[GalleryItem]:
        """Fetch the full item list, bypassing intermediate caches."""
        params: dict[str, object] = {"action": "gallery"}
        if event_id:
            params["eventId"] = event_id
        params["t"] = int(time.time() * 1000)
        response = await self.http_client.get(self.base_url, params=params, timeout=20)
        if not response.is_success:
            raise StoreError(
                f"Failed to fetch Gallery: {response.status_code}",
                status_code=response.status_code,
            )
        payload = response.json()
        items: list[GalleryItem] = []
        for raw in payload.get("items") or []:
            try:
                items.append(GalleryItem.model_validate(raw))
            except ValidationError as exc:
                _logger.warning("Skipping malformed gallery row: %s", exc)
        return items

    async def update_video_status(
        self,
        photo_id: str,
        status: str,
        *,
        task_id: str | None = None,
        extra: dict[str, object] | None = None,
    ) -> None:
        """Write a video status, and the task id once a job has started."""
        payload: dict[str, object] = {
            "action": "updateVideoStatus",
            "photoId": photo_id,
            "status": status,
        }
        if task_id is not None:
            payload["taskId"] = task_id
        if extra:
            payload.update(extra)
        await self._post(payload)

    async def upload_generated_video(
        self, *, video_data_url: str, folder_id: str | None, related_photo_id: str
    ) -> None:
        """Upload a finished video into the session folder."""
        await self._post(
            {
                "action": "uploadGeneratedVideo",
                "image": video_data_url,
                "folderId": folder_id,
                "relatedPhotoId": related_photo_id,
                "skipGallery": False,
            },
            timeout=60,
        )

    async def delete_photo(self, photo_id: str, pin: str) -> dict[str, object]:
        return await self._post({"action": "deletePhoto", "id": photo_id, "pin": pin})

    async def delete_all_photos(self, pin: str) -> dict[str, object]:
        return await self._post({"action": "deleteAllPhotos", "pin": pin})

    async def fetch_image_base64(self, file_id: str) -> str | None:
        """Fetch an original photo for regeneration."""
        response = await self.http_client.get(
            self.base_url,
            params={"action": "getImageBase64", "id": file_id},
            timeout=20,
        )
        response.raise_for_status()
        payload = response.json()
        image = payload.get("image")
        return image if isinstance(image, str) and image else None

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _post(
        self, payload: dict[str, object], timeout: float = 20
    ) -> dict[str, object]:
        # Apps Script only reads the raw body when it is declared as plain text.
        response = await self.http_client.post(
            self.base_url,
            content=json.dumps(payload),
            headers={"Content-Type": "text/plain"},
            timeout=timeout,
        )
        if not response.is_success:
            raise StoreError(
                f"Store action {payload['action']} failed: {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
