"""Seedance (ModelArk) video generation API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class GenerationApiError(RuntimeError):
    """Raised when the generation API rejects a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GenerationClient(Protocol):
    """Interface for the video generation API."""

    async def create_task(self, payload: dict[str, object]) -> dict[str, object]:
        """Submit a generation task and return the raw response."""

    async def get_task(self, task_id: str) -> dict[str, object]:
        """Return the raw status payload for a task."""

    async def download_video(self, url: str) -> bytes:
        """Download a finished video."""


@dataclass
class HttpxSeedanceClient(GenerationClient):
    """HTTPX-backed Seedance client."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxSeedanceClient":
        """Create a Seedance client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(follow_redirects=True),
        )

    async def create_task(self, payload: dict[str, object]) -> dict[str, object]:
        """Start a generation task."""
        response = await self.http_client.post(
            f"{self.base_url}/contents/generations/tasks",
            headers=self._auth_headers(),
            json=payload,
            timeout=30,
        )
        if not response.is_success:
            raise GenerationApiError(
                f"Seedance start failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )
        return response.json()

    async def get_task(self, task_id: str) -> dict[str, object]:
        """Fetch a task's current status."""
        response = await self.http_client.get(
            f"{self.base_url}/contents/generations/tasks/{task_id}",
            headers=self._auth_headers(),
            timeout=15,
        )
        response.raise_for_status()
        return response.json()

    async def download_video(self, url: str) -> bytes:
        """Download the produced video into memory."""
        response = await self.http_client.get(url, timeout=60)
        response.raise_for_status()
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}
