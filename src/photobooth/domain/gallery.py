"""Gallery domain models and URL helpers."""

from enum import StrEnum
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator

_DRIVE_THUMBNAIL = "https://drive.google.com/thumbnail?id={file_id}&sz={size}"
_DRIVE_DOWNLOAD = "https://drive.google.com/uc?export=download&id={file_id}"


class VideoStatus(StrEnum):
    """Video generation state stored on a gallery row."""

    IDLE = "idle"
    QUEUED = "queued"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


ACTIVE_VIDEO_STATUSES = frozenset(
    {VideoStatus.QUEUED.value, VideoStatus.PROCESSING.value}
)


class GalleryItem(BaseModel):
    """Photo or video row held in the external store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    type: str = "photo"
    concept_name: str | None = Field(default=None, alias="conceptName")
    image_url: str | None = Field(default=None, alias="imageUrl")
    download_url: str | None = Field(default=None, alias="downloadUrl")
    video_status: str | None = Field(default=None, alias="videoStatus")
    video_task_id: str | None = Field(default=None, alias="videoTaskId")
    video_file_id: str | None = Field(default=None, alias="videoFileId")
    session_folder_id: str | None = Field(default=None, alias="sessionFolderId")
    session_folder_url: str | None = Field(default=None, alias="sessionFolderUrl")
    original_id: str | None = Field(default=None, alias="originalId")
    video_prompt: str | None = Field(default=None, alias="videoPrompt")
    video_resolution: str | None = Field(default=None, alias="videoResolution")
    video_model: str | None = Field(default=None, alias="videoModel")

    @field_validator(
        "id",
        "video_task_id",
        "video_file_id",
        "session_folder_id",
        "original_id",
        mode="before",
    )
    @classmethod
    def _coerce_sheet_number(cls, value: object) -> object:
        """Sheet cells holding digits arrive as JSON numbers."""
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def has_active_job(self) -> bool:
        """Return true when a generation job is queued or running."""
        return self.video_status in ACTIVE_VIDEO_STATUSES


def is_visible(item: GalleryItem) -> bool:
    """Video rows only show up once their video is done."""
    return item.type != "video" or item.video_status == VideoStatus.DONE


def visible_items(items: list[GalleryItem]) -> list[GalleryItem]:
    """Return the items that belong in the gallery grid, in order."""
    return [item for item in items if is_visible(item)]


def thumbnail_url(item: GalleryItem) -> str:
    """Return the grid thumbnail URL for an item."""
    image_url = item.image_url or ""
    if image_url.startswith("http") and "lh3.googleusercontent.com" not in image_url:
        return image_url
    return _DRIVE_THUMBNAIL.format(file_id=item.id, size="w600")


def high_res_url(file_id: str) -> str:
    return _DRIVE_THUMBNAIL.format(file_id=file_id, size="w1200")


def original_url(file_id: str) -> str:
    return _DRIVE_THUMBNAIL.format(file_id=file_id, size="w1000")


def drive_download_url(file_id: str) -> str:
    """Direct download URL for a Drive file."""
    return _DRIVE_DOWNLOAD.format(file_id=file_id)


def proxied_video_url(file_id: str) -> str:
    """Playback URL routed through the stream proxy."""
    return f"/api/video/proxy?url={quote(drive_download_url(file_id), safe='')}"


def share_link(item: GalleryItem) -> str | None:
    """Link encoded in the QR code for an item."""
    return item.session_folder_url or item.download_url
