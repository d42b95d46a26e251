"""Shared test fixtures."""

from dataclasses import dataclass, field

import httpx
import pytest

from photobooth.adapters.apps_script_client import GalleryStore, StoreError
from photobooth.adapters.booth_api_client import BoothApiClient, BoothApiError
from photobooth.adapters.seedance_client import GenerationApiError, GenerationClient
from photobooth.config import DispatcherConfig, Settings
from photobooth.containers import AppContainer
from photobooth.domain.gallery import GalleryItem
from photobooth.services.dispatcher import QueueDispatcher
from photobooth.services.stream_proxy import StreamProxy
from photobooth.services.video_start import VideoStartService


@dataclass
class InMemoryGalleryStore(GalleryStore):
    """In-memory gallery store that records every write."""

    items: list[GalleryItem] = field(default_factory=list)
    status_updates: list[dict[str, object]] = field(default_factory=list)
    uploads: list[dict[str, object]] = field(default_factory=list)
    deleted: list[tuple[str, str]] = field(default_factory=list)
    cleared_with: list[str] = field(default_factory=list)
    images: dict[str, str] = field(default_factory=dict)
    fetch_count: int = 0
    fail_fetch: bool = False
    delete_result: dict[str, object] = field(default_factory=lambda: {"ok": True})
    clear_result: dict[str, object] = field(default_factory=lambda: {"ok": True})

    async def fetch_gallery(self, event_id: str | None = None) -> list[GalleryItem]:
        self.fetch_count += 1
        if self.fail_fetch:
            raise StoreError("Failed to fetch Gallery: 503", status_code=503)
        return list(self.items)

    async def update_video_status(
        self,
        photo_id: str,
        status: str,
        *,
        task_id: str | None = None,
        extra: dict[str, object] | None = None,
    ) -> None:
        self.status_updates.append(
            {"photo_id": photo_id, "status": status, "task_id": task_id, **(extra or {})}
        )

    async def upload_generated_video(
        self, *, video_data_url: str, folder_id: str | None, related_photo_id: str
    ) -> None:
        self.uploads.append(
            {
                "video_data_url": video_data_url,
                "folder_id": folder_id,
                "related_photo_id": related_photo_id,
            }
        )

    async def delete_photo(self, photo_id: str, pin: str) -> dict[str, object]:
        self.deleted.append((photo_id, pin))
        return self.delete_result

    async def delete_all_photos(self, pin: str) -> dict[str, object]:
        self.cleared_with.append(pin)
        return self.clear_result

    async def fetch_image_base64(self, file_id: str) -> str | None:
        return self.images.get(file_id)

    def apply_status_updates(self) -> None:
        """Fold recorded status writes back into the stored rows."""
        for update in self.status_updates:
            for index, item in enumerate(self.items):
                if item.id == update["photo_id"]:
                    changes: dict[str, object] = {"video_status": update["status"]}
                    if update["task_id"]:
                        changes["video_task_id"] = update["task_id"]
                    self.items[index] = item.model_copy(update=changes)


@dataclass
class FakeGenerationClient(GenerationClient):
    """Fake generation API with scripted task statuses."""

    statuses: dict[str, dict[str, object]] = field(default_factory=dict)
    failing_polls: set[str] = field(default_factory=set)
    start_response: dict[str, object] = field(default_factory=lambda: {"id": "task-1"})
    failing_starts: set[str] = field(default_factory=set)
    videos: dict[str, bytes] = field(default_factory=dict)
    created: list[dict[str, object]] = field(default_factory=list)
    polled: list[str] = field(default_factory=list)
    downloaded: list[str] = field(default_factory=list)

    async def create_task(self, payload: dict[str, object]) -> dict[str, object]:
        image_url = payload["content"][1]["image_url"]["url"]  # type: ignore[index]
        if any(image_url.endswith(f"id={item_id}") for item_id in self.failing_starts):
            raise GenerationApiError("Seedance start failed (400): bad", 400)
        self.created.append(payload)
        return self.start_response

    async def get_task(self, task_id: str) -> dict[str, object]:
        self.polled.append(task_id)
        if task_id in self.failing_polls:
            request = httpx.Request("GET", f"https://ark.test/tasks/{task_id}")
            raise httpx.ConnectError("connection reset", request=request)
        return self.statuses.get(task_id, {"status": "running"})

    async def download_video(self, url: str) -> bytes:
        self.downloaded.append(url)
        return self.videos.get(url, b"video-bytes")


@dataclass
class FakeBoothApiClient(BoothApiClient):
    """Fake booth API that counts ticks and records start requests."""

    ticks: int = 0
    starts: list[dict[str, object]] = field(default_factory=list)
    fail_start: bool = False
    fail_tick: bool = False

    async def tick(self) -> dict[str, object]:
        self.ticks += 1
        if self.fail_tick:
            raise BoothApiError("tick down")
        return {"ok": True}

    async def start_video(
        self,
        drive_file_id: str,
        session_folder_id: str,
        prompt: str | None = None,
    ) -> dict[str, object]:
        if self.fail_start:
            raise BoothApiError("quota exceeded")
        self.starts.append(
            {
                "drive_file_id": drive_file_id,
                "session_folder_id": session_folder_id,
                "prompt": prompt,
            }
        )
        return {"ok": True}


def make_item(item_id: str, **fields: object) -> GalleryItem:
    """Build a gallery item from wire-format field names."""
    return GalleryItem.model_validate({"id": item_id, **fields})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ark_api_key="ark-key",
        ark_base_url="https://ark.test/api/v3/",
        apps_script_base_url="https://script.test/exec",
        admin_pin="1234",
    )


@pytest.fixture
def dispatcher_config(settings: Settings) -> DispatcherConfig:
    return DispatcherConfig.from_settings(settings)


@pytest.fixture
def store() -> InMemoryGalleryStore:
    return InMemoryGalleryStore()


@pytest.fixture
def generation_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def dispatcher(
    dispatcher_config: DispatcherConfig,
    store: InMemoryGalleryStore,
    generation_client: FakeGenerationClient,
) -> QueueDispatcher:
    return QueueDispatcher(
        config=dispatcher_config, store=store, generation_client=generation_client
    )


@pytest.fixture
def upstream_requests() -> list[httpx.Request]:
    return []


class _StreamedBody(httpx.AsyncByteStream):
    """Unread response body, as a real transport would hand it over."""

    def __init__(self, data: bytes) -> None:
        self.data = data

    async def __aiter__(self):  # type: ignore[no-untyped-def]
        yield self.data


@pytest.fixture
def upstream_handler():  # type: ignore[no-untyped-def]
    """Default upstream: a 1000-byte video that honours simple ranges."""
    body = bytes(range(256)) * 4
    body = body[:1000]

    def handler(request: httpx.Request) -> httpx.Response:
        range_header = request.headers.get("range")
        if range_header == "bytes=0-99":
            return httpx.Response(
                206,
                headers={
                    "Content-Type": "video/mp4",
                    "Content-Length": "100",
                    "Content-Range": "bytes 0-99/1000",
                    "Accept-Ranges": "bytes",
                },
                stream=_StreamedBody(body[:100]),
            )
        return httpx.Response(
            200,
            headers={"Content-Length": "1000", "Accept-Ranges": "bytes"},
            stream=_StreamedBody(body),
        )

    return handler


@pytest.fixture
def stream_proxy(upstream_handler, upstream_requests) -> StreamProxy:  # type: ignore[no-untyped-def]
    def recording_handler(request: httpx.Request) -> httpx.Response:
        upstream_requests.append(request)
        return upstream_handler(request)

    transport = httpx.MockTransport(recording_handler)
    return StreamProxy(http_client=httpx.AsyncClient(transport=transport))


@pytest.fixture
def container(
    settings: Settings,
    store: InMemoryGalleryStore,
    dispatcher: QueueDispatcher,
    stream_proxy: StreamProxy,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        stream_proxy=stream_proxy,
        dispatcher=dispatcher,
        video_start_service=VideoStartService(store),
        close_resources=close_resources,
    )
