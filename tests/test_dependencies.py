from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException

from pixelpipe.core.dependencies import build_event_manager, get_dependencies, initialize_app_dependencies
from pixelpipe.core.events import IMAGE_DELETE, IMAGE_GET, IMAGE_HEAD, IMAGE_PUT, RESPONSE_SEND
from pixelpipe.settings import Settings


def listener_names(event_manager, event_name):
    return [r.listener_name for r in event_manager.get_registrations(event_name)]


def test_build_event_manager_without_cache(asset_store, engine):
    event_manager = build_event_manager(asset_store, engine)

    assert listener_names(event_manager, IMAGE_PUT) == [
        "ImagePreparationListener.prepare_image",
        "StorageOperationsListener.insert_image",
    ]
    assert listener_names(event_manager, IMAGE_GET) == ["StorageOperationsListener.load_image"]
    assert listener_names(event_manager, IMAGE_HEAD) == ["StorageOperationsListener.load_image"]
    assert not event_manager.has_listeners(RESPONSE_SEND)


def test_build_event_manager_with_cache(asset_store, engine, cache):
    event_manager = build_event_manager(asset_store, engine, cache)

    assert listener_names(event_manager, IMAGE_GET) == [
        "ImageTransformationCacheListener.load_from_cache",
        "StorageOperationsListener.load_image",
    ]
    assert listener_names(event_manager, IMAGE_DELETE) == [
        "ImageTransformationCacheListener.delete_from_cache",
        "StorageOperationsListener.delete_image",
    ]
    assert listener_names(event_manager, RESPONSE_SEND) == ["ImageTransformationCacheListener.store_in_cache"]
    assert event_manager.listener_count == 8


def test_initialize_app_dependencies(tmp_path, monkeypatch):
    monkeypatch.setenv("IMAGE_CACHE_PATH", str(tmp_path / "cache"))
    monkeypatch.setenv("ASSET_STORE_PATH", str(tmp_path / "assets"))
    monkeypatch.setenv("IMAGE_CACHE_ENABLED", "true")
    settings = Settings()

    container = initialize_app_dependencies(settings)

    assert container.settings is settings
    assert container.cache.path == tmp_path / "cache"
    assert container.asset_store.root == tmp_path / "assets"
    assert container.event_manager.has_listeners(RESPONSE_SEND)


def test_initialize_app_dependencies_cache_disabled(tmp_path, monkeypatch):
    monkeypatch.setenv("ASSET_STORE_PATH", str(tmp_path / "assets"))
    monkeypatch.setenv("IMAGE_CACHE_ENABLED", "false")

    container = initialize_app_dependencies(Settings())

    assert container.cache is None
    assert not container.event_manager.has_listeners(RESPONSE_SEND)


def test_initialize_app_dependencies_unwritable_cache(tmp_path, monkeypatch):
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"")
    monkeypatch.setenv("IMAGE_CACHE_PATH", str(blocker / "cache"))
    monkeypatch.setenv("ASSET_STORE_PATH", str(tmp_path / "assets"))
    monkeypatch.setenv("IMAGE_CACHE_ENABLED", "true")

    with pytest.raises(RuntimeError, match="transformation cache"):
        initialize_app_dependencies(Settings())


def test_get_dependencies_returns_container():
    container = MagicMock()
    request = MagicMock()
    request.app.state.dependencies = container

    assert get_dependencies(request) is container


def test_get_dependencies_missing():
    request = MagicMock()
    request.app.state = MagicMock(spec=[])

    with pytest.raises(HTTPException) as exc_info:
        get_dependencies(request)

    assert exc_info.value.status_code == 500


@patch("pixelpipe.__main__.uvicorn")
@patch("pixelpipe.__main__.Settings")
def test_main_runs_uvicorn(MockSettings, mock_uvicorn):
    from pixelpipe.__main__ import main

    settings = MockSettings.return_value
    settings.get_app_host.return_value = "127.0.0.1"
    settings.get_app_port.return_value = 9000
    settings.get_app_reload.return_value = False
    settings.get_log_level.return_value = "DEBUG"

    main()

    mock_uvicorn.run.assert_called_once_with(
        "pixelpipe.main:app", host="127.0.0.1", port=9000, reload=False, log_level="debug"
    )
