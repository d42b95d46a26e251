"""Queue dispatcher that advances video generation jobs one tick at a time."""

import base64
import logging
from dataclasses import dataclass, field

import httpx

from photobooth.adapters.apps_script_client import GalleryStore, StoreError
from photobooth.adapters.seedance_client import GenerationApiError, GenerationClient
from photobooth.config import DispatcherConfig
from photobooth.domain.gallery import GalleryItem, VideoStatus
from photobooth.domain.generation import (
    build_task_payload,
    extract_task_id,
    parse_task_status,
    resolve_parameters,
)

_logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    """Telemetry for one tick. Not used to decide anything later."""

    processed: int = 0
    started: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "processed": self.processed,
            "started": self.started,
            "errors": list(self.errors),
        }


@dataclass
class QueueDispatcher:
    """Polls in-flight jobs and admits queued ones up to the concurrency cap.

    Holds no state between ticks. The processing count is re-read from the
    store on every tick, so a restart between ticks loses nothing.
    """

    config: DispatcherConfig
    store: GalleryStore
    generation_client: GenerationClient

    async def tick(self) -> DispatchReport:
        """Run one maintenance pass followed by one admission pass."""
        items = await self.store.fetch_gallery()
        processing = [i for i in items if i.video_status == VideoStatus.PROCESSING]
        queued = [i for i in items if i.video_status == VideoStatus.QUEUED]
        report = DispatchReport()

        for item in processing:
            await self._advance(item, report)

        available_slots = self.config.max_concurrent - len(processing)
        if available_slots > 0 and queued:
            for item in queued[:available_slots]:
                await self._start(item, report)

        _logger.info(
            "Tick done: processing=%s queued=%s processed=%s started=%s",
            len(processing),
            len(queued),
            report.processed,
            report.started,
        )
        return report

    async def _advance(self, item: GalleryItem, report: DispatchReport) -> None:
        """Check one running job and write back a terminal result."""
        if not item.video_task_id:
            return
        try:
            payload = await self.generation_client.get_task(item.video_task_id)
        except (httpx.HTTPError, ValueError) as exc:
            _logger.info(
                "Status poll for %s failed, retrying next tick: %s", item.id, exc
            )
            return

        status = parse_task_status(payload)
        try:
            if status.succeeded:
                if not status.video_url:
                    _logger.warning("Task %s succeeded without a video URL", item.id)
                    return
                video = await self.generation_client.download_video(status.video_url)
                encoded = base64.b64encode(video).decode("ascii")
                await self.store.upload_generated_video(
                    video_data_url=f"data:video/mp4;base64,{encoded}",
                    folder_id=item.session_folder_id,
                    related_photo_id=item.id,
                )
                report.processed += 1
            elif status.failed:
                _logger.warning("Video generation failed for %s", item.id)
                await self.store.update_video_status(item.id, VideoStatus.FAILED.value)
        except (httpx.HTTPError, StoreError) as exc:
            _logger.exception("Failed to finalize video for %s", item.id)
            report.errors.append(f"{item.id}: {exc}")

    async def _start(self, item: GalleryItem, report: DispatchReport) -> None:
        """Submit a generation task for a queued item and mark it processing."""
        params = resolve_parameters(item, self.config.default_model_id)
        try:
            response = await self.generation_client.create_task(
                build_task_payload(item, params)
            )
            task_id = extract_task_id(response)
            if not task_id:
                _logger.warning("Seedance start for %s returned no task id", item.id)
                report.errors.append(f"{item.id}: no task id in start response")
                return
            await self.store.update_video_status(
                item.id, VideoStatus.PROCESSING.value, task_id=task_id
            )
        except (httpx.HTTPError, GenerationApiError, StoreError, ValueError) as exc:
            _logger.error("Seedance start failed for %s: %s", item.id, exc)
            report.errors.append(f"{item.id}: {exc}")
            return
        report.started += 1
