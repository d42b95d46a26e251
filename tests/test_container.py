"""Tests for container wiring."""

import asyncio

import pytest

from photobooth.config import ConfigurationError, DispatcherConfig, Settings
from photobooth.containers import build_container, build_gallery_controller


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    assert container.dispatcher is not None
    assert container.dispatcher.config.api_base_url == "https://ark.test/api/v3"
    assert container.video_start_service is not None
    asyncio.run(container.close_resources())


def test_build_container_without_credentials_disables_dispatcher() -> None:
    settings = Settings(
        ark_api_key=None,
        ark_base_url=None,
        apps_script_base_url="https://script.test/exec",
    )

    container = build_container(settings)

    assert container.dispatcher is None
    assert container.video_start_service is not None
    asyncio.run(container.close_resources())


def test_dispatcher_config_names_missing_values() -> None:
    settings = Settings(ark_api_key="key", ark_base_url=None, apps_script_base_url="")

    with pytest.raises(ConfigurationError) as excinfo:
        DispatcherConfig.from_settings(settings)

    assert "ARK_BASE_URL" in str(excinfo.value)
    assert "APPS_SCRIPT_BASE_URL" in str(excinfo.value)
    assert "ARK_API_KEY" not in str(excinfo.value)


def test_dispatcher_config_defaults(settings: Settings) -> None:
    config = DispatcherConfig.from_settings(settings)

    assert config.default_model_id == "seedance-1-0-pro-fast-251015"
    assert config.max_concurrent == 5


def test_build_gallery_controller(settings: Settings) -> None:
    controller = build_gallery_controller(settings)

    assert controller.admin_pin == "1234"
    assert controller.poll_interval_seconds == 5.0
    asyncio.run(controller.store.close())  # type: ignore[attr-defined]
    asyncio.run(controller.booth_api.close())  # type: ignore[attr-defined]


def test_build_gallery_controller_requires_store_url() -> None:
    with pytest.raises(ConfigurationError):
        build_gallery_controller(Settings(apps_script_base_url=None))
