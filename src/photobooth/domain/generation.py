"""Video generation rules and response-shape handling for the Seedance API."""

from dataclasses import dataclass

from photobooth.domain.gallery import GalleryItem, drive_download_url

DEFAULT_VIDEO_PROMPT = "Cinematic movement, high quality, slow motion"
DEFAULT_RESOLUTION = "480p"
ALLOWED_RESOLUTIONS = frozenset({"720p", "480p"})
VIDEO_DURATION_SECONDS = 5

SUCCEEDED_STATUSES = frozenset({"succeeded", "success"})
FAILED_STATUSES = frozenset({"failed", "error"})

# Where the task body lives in a status response, first match wins.
_RESULT_KEYS = ("Result", "data")
# Where the finished video URL lives inside the task body, first match wins.
_VIDEO_URL_PATHS = (("content", "video_url"), ("output", "video_url"), ("video_url",))


@dataclass(frozen=True)
class TaskStatus:
    """Normalized view of a generation task status response."""

    status: str
    video_url: str | None

    @property
    def succeeded(self) -> bool:
        return self.status in SUCCEEDED_STATUSES

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES


@dataclass(frozen=True)
class GenerationParameters:
    """Resolved per-item parameters for a new generation task."""

    prompt: str
    resolution: str
    model: str


def normalize_resolution(value: str | None) -> str:
    """Return the resolution if it is supported, else the 480p default."""
    if value in ALLOWED_RESOLUTIONS:
        return value
    return DEFAULT_RESOLUTION


def resolve_parameters(item: GalleryItem, default_model: str) -> GenerationParameters:
    """Fill in prompt, resolution and model defaults for a queued item."""
    return GenerationParameters(
        prompt=item.video_prompt or DEFAULT_VIDEO_PROMPT,
        resolution=normalize_resolution(item.video_resolution),
        model=item.video_model or default_model,
    )


def build_task_payload(
    item: GalleryItem, params: GenerationParameters
) -> dict[str, object]:
    """Build the create-task request body for an item's source photo."""
    return {
        "model": params.model,
        "content": [
            {"type": "text", "text": params.prompt},
            {
                "type": "image_url",
                "image_url": {"url": drive_download_url(item.id)},
            },
        ],
        "parameters": {
            "duration": VIDEO_DURATION_SECONDS,
            "resolution": params.resolution,
            "audio": False,
        },
    }


def extract_result(payload: dict[str, object]) -> dict[str, object]:
    """Return the task body from a response, trying `Result`, then `data`."""
    for key in _RESULT_KEYS:
        value = payload.get(key)
        if isinstance(value, dict) and value:
            return value
    return payload


def extract_video_url(result: dict[str, object]) -> str | None:
    """Return the first video URL found along the known paths."""
    for path in _VIDEO_URL_PATHS:
        node: object = result
        for key in path:
            if not isinstance(node, dict):
                node = None
                break
            node = node.get(key)
        if isinstance(node, str) and node:
            return node
    return None


def parse_task_status(payload: dict[str, object]) -> TaskStatus:
    """Parse a status response into a lower-cased status and optional URL."""
    result = extract_result(payload)
    raw_status = result.get("status") or "processing"
    return TaskStatus(
        status=str(raw_status).lower(),
        video_url=extract_video_url(result),
    )


def extract_task_id(payload: dict[str, object]) -> str | None:
    """Return the new task id from `id`, falling back to `Result.id`."""
    task_id = payload.get("id")
    if not task_id:
        result = payload.get("Result")
        if isinstance(result, dict):
            task_id = result.get("id")
    return str(task_id) if task_id else None
