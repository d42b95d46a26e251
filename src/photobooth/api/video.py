"""Video endpoints: stream proxy, queue tick and start."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from fastapi import APIRouter, Header, Query, Request, status
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.background import BackgroundTask

from photobooth.adapters.apps_script_client import StoreError
from photobooth.services.stream_proxy import InvalidProxyRequestError, UpstreamError
from photobooth.services.video_start import VideoAlreadyActiveError

if TYPE_CHECKING:
    from photobooth.containers import AppContainer

router = APIRouter(prefix="/api/video", tags=["video"])
_logger = logging.getLogger(__name__)

_PROXY_CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Range",
}
_ALLOW_ANY_ORIGIN = {"Access-Control-Allow-Origin": "*"}


class VideoStartRequest(BaseModel):
    """Body of a start-video request."""

    model_config = ConfigDict(populate_by_name=True)

    drive_file_id: str | None = Field(default=None, alias="driveFileId")
    session_folder_id: str | None = Field(default=None, alias="sessionFolderId")
    prompt: str | None = None
    resolution: str | None = None
    model: str | None = None


def _error(
    message: str, status_code: int, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)


@router.options("/proxy")
async def proxy_preflight() -> Response:
    """Answer CORS preflight requests."""
    return Response(status_code=status.HTTP_200_OK, headers=_PROXY_CORS_HEADERS)


@router.api_route("/proxy", methods=["HEAD", "POST", "PUT", "PATCH", "DELETE"])
async def proxy_method_not_allowed() -> JSONResponse:
    return _error(
        "Method not allowed",
        status.HTTP_405_METHOD_NOT_ALLOWED,
        headers=_PROXY_CORS_HEADERS,
    )


@router.get("/proxy")
async def proxy_video(
    request: Request,
    url: str | None = Query(default=None),
    range_header: str | None = Header(default=None, alias="range"),
) -> Response:
    """Relay a remote video, forwarding Range so players can seek."""
    container: AppContainer = request.app.state.container
    try:
        upstream = await container.stream_proxy.open(url, range_header)
    except InvalidProxyRequestError as exc:
        return _error(str(exc), status.HTTP_400_BAD_REQUEST, _PROXY_CORS_HEADERS)
    except httpx.InvalidURL:
        return _error("Invalid url", status.HTTP_400_BAD_REQUEST, _PROXY_CORS_HEADERS)
    except (UpstreamError, httpx.HTTPError) as exc:
        _logger.exception("Video proxy failed for %s", url)
        return _error(
            str(exc) or "Proxy Stream Error",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            _PROXY_CORS_HEADERS,
        )
    return StreamingResponse(
        upstream.iter_body(),
        status_code=upstream.status_code,
        headers={**_PROXY_CORS_HEADERS, **upstream.headers},
        background=BackgroundTask(upstream.response.aclose),
    )


@router.get("/tick")
async def tick(request: Request) -> JSONResponse:
    """Run one dispatcher pass over the video queue."""
    container: AppContainer = request.app.state.container
    if container.dispatcher is None:
        return _error(
            "Config missing", status.HTTP_500_INTERNAL_SERVER_ERROR, _ALLOW_ANY_ORIGIN
        )
    try:
        report = await container.dispatcher.tick()
    except (StoreError, httpx.HTTPError, ValueError) as exc:
        _logger.exception("Tick error")
        return _error(str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR, _ALLOW_ANY_ORIGIN)
    return JSONResponse(
        {"ok": True, "report": report.as_dict()}, headers=_ALLOW_ANY_ORIGIN
    )


@router.post("/start")
async def start_video(body: VideoStartRequest, request: Request) -> JSONResponse:
    """Queue a gallery photo for video generation."""
    container: AppContainer = request.app.state.container
    if container.video_start_service is None:
        return _error("Config missing", status.HTTP_500_INTERNAL_SERVER_ERROR)
    if not body.drive_file_id:
        return _error("Missing driveFileId", status.HTTP_400_BAD_REQUEST)
    try:
        await container.video_start_service.queue(
            drive_file_id=body.drive_file_id,
            session_folder_id=body.session_folder_id,
            prompt=body.prompt,
            resolution=body.resolution,
            model=body.model,
        )
    except VideoAlreadyActiveError as exc:
        return _error(str(exc), status.HTTP_409_CONFLICT)
    except (StoreError, httpx.HTTPError, ValueError) as exc:
        _logger.exception("Failed to queue video for %s", body.drive_file_id)
        return _error(str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse({"ok": True, "status": "queued"})
