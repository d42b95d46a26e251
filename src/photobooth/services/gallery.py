"""Gallery view state: background polling and optimistic item mutations."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from photobooth.adapters.apps_script_client import GalleryStore
from photobooth.adapters.booth_api_client import BoothApiClient
from photobooth.domain.gallery import GalleryItem, VideoStatus, visible_items

_logger = logging.getLogger(__name__)

DEFAULT_ADMIN_PIN = "0000"


@dataclass(frozen=True)
class Concept:
    """Style preset a photo can be regenerated with."""

    id: str
    name: str


@dataclass(frozen=True)
class SessionRef:
    """Session folder a regenerated photo is saved back into."""

    id: str
    url: str


RegenerateHandler = Callable[
    [str, Concept, bool, SessionRef | None], Awaitable[None] | None
]


class GalleryActionError(RuntimeError):
    """Raised when the store reports that a mutation did not happen."""


def _log_alert(message: str) -> None:
    _logger.warning("Alert: %s", message)


@dataclass
class GalleryController:
    """Keeps a possibly stale view of the gallery and drives the video queue.

    While active, two independent loops run: one refreshes the item list and
    one pokes the dispatcher. Mutations change local state first and restore
    the previous snapshot if the backend call fails.
    """

    store: GalleryStore
    booth_api: BoothApiClient
    admin_pin: str | None = None
    poll_interval_seconds: float = 5.0
    on_items_changed: Callable[[list[GalleryItem]], None] | None = None
    on_regenerate: RegenerateHandler | None = None
    alert: Callable[[str], None] = _log_alert
    items: list[GalleryItem] = field(default_factory=list)
    selected: GalleryItem | None = None
    loading: bool = field(default=True, init=False)
    regenerating: bool = False
    event_id: str | None = None
    _tasks: list[asyncio.Task[None]] = field(
        default_factory=list, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self.loading = not self.items

    @property
    def active(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def activate(self, event_id: str | None = None) -> None:
        """Start polling for an event, replacing any loops already running."""
        await self.deactivate()
        self.event_id = event_id
        await self.refresh()
        self._tasks = [
            asyncio.create_task(self._every(self.refresh), name="gallery-poll"),
            asyncio.create_task(self._every(self.trigger_tick), name="gallery-tick"),
        ]

    async def deactivate(self) -> None:
        """Cancel both loops together."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def refresh(self) -> None:
        """Reload the gallery list; errors keep the current view."""
        try:
            items = await self.store.fetch_gallery(self.event_id)
        except Exception:
            _logger.exception("Failed to load gallery")
            return
        self._replace(visible_items(items))
        self.loading = False

    async def trigger_tick(self) -> None:
        """Invoke the dispatcher once, only logging failures."""
        try:
            await self.booth_api.tick()
        except Exception:
            _logger.exception("Tick failed")

    def select(self, item: GalleryItem | None) -> None:
        self.selected = item

    async def delete_item(self, item_id: str) -> bool:
        """Remove an item now and from the store, restoring it on failure."""
        snapshot = list(self.items)
        self._replace([item for item in snapshot if item.id != item_id])
        if self.selected is not None and self.selected.id == item_id:
            self.selected = None
        try:
            result = await self.store.delete_photo(item_id, self._effective_pin())
            if not result.get("ok"):
                raise GalleryActionError(str(result.get("error") or "Failed to delete"))
        except Exception as exc:
            _logger.exception("Failed to delete %s", item_id)
            self.alert(f"Failed to delete photo. Error: {exc}")
            self._replace(snapshot)
            return False
        return True

    async def clear_all(self, pin: str) -> bool:
        """Wipe the gallery after an exact PIN match."""
        if str(pin) != self._effective_pin():
            self.alert("PIN INVALID!")
            return False
        snapshot = list(self.items)
        self._replace([])
        try:
            result = await self.store.delete_all_photos(pin)
            if result and result.get("ok") is False:
                raise GalleryActionError(str(result.get("error") or "Failed to clear"))
        except Exception:
            _logger.exception("Failed to clear gallery")
            self.alert("Failed to clear gallery.")
            self._replace(snapshot)
            return False
        return True

    async def request_video(self, item_id: str, prompt: str | None = None) -> bool:
        """Queue a video for a photo, showing it as queued straight away."""
        item = self._find(item_id)
        if item is None or not item.session_folder_id:
            self.alert("Session data incomplete. Cannot generate video.")
            return False

        snapshot = list(self.items)
        previous_selected = self.selected
        self._replace(
            [
                current.model_copy(update={"video_status": VideoStatus.QUEUED.value})
                if current.id == item_id
                else current
                for current in snapshot
            ]
        )
        if self.selected is not None and self.selected.id == item_id:
            self.selected = self._find(item_id)
        try:
            await self.booth_api.start_video(
                drive_file_id=item.id,
                session_folder_id=item.session_folder_id,
                prompt=prompt,
            )
        except Exception as exc:
            _logger.exception("Failed to start video for %s", item_id)
            self.alert(f"Failed to start video: {exc}")
            self._replace(snapshot)
            self.selected = previous_selected
            return False
        return True

    async def regenerate(
        self, item_id: str, concept: Concept, use_ultra: bool = False
    ) -> bool:
        """Hand the original photo of an item to the regeneration flow."""
        item = self._find(item_id)
        if item is None or not item.original_id or self.on_regenerate is None:
            return False
        self.regenerating = True
        try:
            image = await self.store.fetch_image_base64(item.original_id)
            if not image:
                self.alert("Failed to fetch the original photo. Please try again.")
                self.regenerating = False
                return False
            session = None
            if item.session_folder_id and item.session_folder_url:
                session = SessionRef(
                    id=item.session_folder_id, url=item.session_folder_url
                )
            outcome = self.on_regenerate(image, concept, use_ultra, session)
            if outcome is not None:
                await outcome
        except Exception:
            _logger.exception("Regeneration failed for %s", item_id)
            self.alert("Something went wrong while preparing the regeneration.")
            self.regenerating = False
            return False
        return True

    async def _every(self, action: Callable[[], Awaitable[None]]) -> None:
        while True:
            await asyncio.sleep(self.poll_interval_seconds)
            await action()

    def _effective_pin(self) -> str:
        return str(self.admin_pin or DEFAULT_ADMIN_PIN)

    def _find(self, item_id: str) -> GalleryItem | None:
        return next((item for item in self.items if item.id == item_id), None)

    def _replace(self, items: list[GalleryItem]) -> None:
        self.items = items
        if self.on_items_changed is not None:
            self.on_items_changed(items)
