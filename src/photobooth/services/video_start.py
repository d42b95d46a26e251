"""Queue a gallery photo for video generation."""

import logging
from dataclasses import dataclass

from photobooth.adapters.apps_script_client import GalleryStore
from photobooth.domain.gallery import VideoStatus

_logger = logging.getLogger(__name__)


class VideoAlreadyActiveError(RuntimeError):
    """Raised when an item already has a queued or running job."""


@dataclass
class VideoStartService:
    """Moves an item into the queue; the dispatcher picks it up on a later tick."""

    store: GalleryStore

    async def queue(  # noqa: PLR0913
        self,
        drive_file_id: str,
        session_folder_id: str | None = None,
        prompt: str | None = None,
        resolution: str | None = None,
        model: str | None = None,
    ) -> None:
        """Mark an item as queued along with its generation parameters."""
        items = await self.store.fetch_gallery()
        current = next((item for item in items if item.id == drive_file_id), None)
        if current is not None and current.has_active_job:
            raise VideoAlreadyActiveError(
                f"Video already {current.video_status} for {drive_file_id}"
            )

        extra: dict[str, object] = {}
        if session_folder_id:
            extra["sessionFolderId"] = session_folder_id
        if prompt:
            extra["prompt"] = prompt
        if resolution:
            extra["resolution"] = resolution
        if model:
            extra["model"] = model
        await self.store.update_video_status(
            drive_file_id, VideoStatus.QUEUED.value, extra=extra
        )
        _logger.info("Queued video for %s", drive_file_id)
