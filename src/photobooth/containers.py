"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from photobooth.adapters.apps_script_client import HttpxAppsScriptClient
from photobooth.adapters.booth_api_client import HttpxBoothApiClient
from photobooth.adapters.seedance_client import HttpxSeedanceClient
from photobooth.config import ConfigurationError, DispatcherConfig, Settings
from photobooth.services.dispatcher import QueueDispatcher
from photobooth.services.gallery import GalleryController
from photobooth.services.stream_proxy import StreamProxy
from photobooth.services.video_start import VideoStartService

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies.

    The dispatcher and start service are None when their configuration is
    incomplete; endpoints that need them answer with a configuration error.
    """

    settings: Settings
    stream_proxy: StreamProxy
    dispatcher: QueueDispatcher | None
    video_start_service: VideoStartService | None
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    stream_proxy = StreamProxy.create()
    closers: list[Callable[[], Awaitable[None]]] = [stream_proxy.close]

    store_client = None
    if resolved_settings.apps_script_base_url:
        store_client = HttpxAppsScriptClient.create(
            resolved_settings.apps_script_base_url
        )
        closers.append(store_client.close)

    dispatcher = None
    try:
        dispatcher_config = DispatcherConfig.from_settings(resolved_settings)
    except ConfigurationError as exc:
        _logger.warning("Queue dispatcher disabled: %s", exc)
    else:
        seedance_client = HttpxSeedanceClient.create(
            api_key=dispatcher_config.api_key,
            base_url=dispatcher_config.api_base_url,
        )
        closers.append(seedance_client.close)
        dispatcher = QueueDispatcher(
            config=dispatcher_config,
            store=store_client,
            generation_client=seedance_client,
        )

    async def close_resources() -> None:
        for close in closers:
            await close()

    return AppContainer(
        settings=resolved_settings,
        stream_proxy=stream_proxy,
        dispatcher=dispatcher,
        video_start_service=VideoStartService(store_client) if store_client else None,
        close_resources=close_resources,
    )


def build_gallery_controller(settings: Settings | None = None) -> GalleryController:
    """Create a gallery controller talking to the store and the booth API."""
    resolved_settings = settings or Settings()
    if not resolved_settings.apps_script_base_url:
        raise ConfigurationError("Config missing: APPS_SCRIPT_BASE_URL")
    return GalleryController(
        store=HttpxAppsScriptClient.create(resolved_settings.apps_script_base_url),
        booth_api=HttpxBoothApiClient.create(resolved_settings.booth_api_base_url),
        admin_pin=resolved_settings.admin_pin,
        poll_interval_seconds=resolved_settings.gallery_poll_interval_seconds,
    )
