"""Client for the booth's own video endpoints, used by the gallery loop."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class BoothApiError(RuntimeError):
    """Raised when a booth endpoint reports a failure."""


class BoothApiClient(Protocol):
    """Interface for calling the booth's video endpoints."""

    async def tick(self) -> dict[str, object]:
        """Invoke the queue dispatcher once."""

    async def start_video(
        self,
        drive_file_id: str,
        session_folder_id: str,
        prompt: str | None = None,
    ) -> dict[str, object]:
        """Queue a video for a gallery photo."""


@dataclass
class HttpxBoothApiClient(BoothApiClient):
    """Booth API client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxBoothApiClient":
        """Create a booth API client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def tick(self) -> dict[str, object]:
        """Call the dispatcher tick endpoint."""
        response = await self.http_client.get(
            f"{self.base_url}/api/video/tick", timeout=60
        )
        response.raise_for_status()
        return response.json()

    async def start_video(
        self,
        drive_file_id: str,
        session_folder_id: str,
        prompt: str | None = None,
    ) -> dict[str, object]:
        """Ask the booth to queue a video for a photo."""
        response = await self.http_client.post(
            f"{self.base_url}/api/video/start",
            json={
                "driveFileId": drive_file_id,
                "sessionFolderId": session_folder_id,
                "prompt": prompt,
            },
            timeout=20,
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.is_success:
            raise BoothApiError(str(data.get("error") or response.status_code))
        return data

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
