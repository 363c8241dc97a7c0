import pytest

from pixelpipe.settings import Settings


# Fixture to provide a Settings instance for each test
@pytest.fixture
def settings():
    return Settings()


@pytest.mark.parametrize(
    "env_var, method_name, test_value, expected_value",
    [
        # Env Var Name, Settings Method Name, Value to Set, Expected Return
        ("IMAGE_CACHE_PATH", "get_cache_path", "/srv/cache", "/srv/cache"),
        ("IMAGE_CACHE_ENABLED", "get_cache_enabled", "false", False),
        ("IMAGE_CACHE_ENABLED", "get_cache_enabled", "Yes", True),
        ("ASSET_STORE_PATH", "get_asset_store_path", "/srv/assets", "/srv/assets"),
        ("LOG_LEVEL", "get_log_level", "debug", "DEBUG"),  # Should be uppercase
        ("APP_HOST", "get_app_host", "127.0.0.1", "127.0.0.1"),
        ("APP_PORT", "get_app_port", "9000", 9000),
        ("APP_RELOAD", "get_app_reload", "true", True),
        ("APP_RELOAD", "get_app_reload", "0", False),
        ("RUN_MODE", "get_run_mode", "dev", "dev"),
        ("LOKI_URL", "get_loki_url", "http://loki:3100", "http://loki:3100"),
    ],
)
def test_getter_set(settings, monkeypatch, env_var, method_name, test_value, expected_value):
    """Test getters when the corresponding environment variable is set."""
    monkeypatch.setenv(env_var, test_value)
    assert getattr(settings, method_name)() == expected_value


@pytest.mark.parametrize(
    "env_var, method_name, expected_value",
    [
        ("IMAGE_CACHE_PATH", "get_cache_path", "./var/cache"),
        ("IMAGE_CACHE_ENABLED", "get_cache_enabled", True),
        ("ASSET_STORE_PATH", "get_asset_store_path", "./var/assets"),
        ("LOG_LEVEL", "get_log_level", "INFO"),
        ("APP_HOST", "get_app_host", "0.0.0.0"),
        ("APP_PORT", "get_app_port", 8000),
        ("APP_RELOAD", "get_app_reload", False),
        ("RUN_MODE", "get_run_mode", "prod"),
        ("LOKI_URL", "get_loki_url", None),
    ],
)
def test_getter_not_set(settings, monkeypatch, env_var, method_name, expected_value):
    """Test getters fall back to their defaults when the variable is not set."""
    monkeypatch.delenv(env_var, raising=False)
    assert getattr(settings, method_name)() == expected_value


@pytest.mark.parametrize(
    "env_var, method_name, test_value",
    [
        ("IMAGE_CACHE_PATH", "get_cache_path", ""),
        ("ASSET_STORE_PATH", "get_asset_store_path", ""),
        ("APP_PORT", "get_app_port", "eighty"),
        ("IMAGE_CACHE_ENABLED", "get_cache_enabled", "maybe"),
        ("APP_RELOAD", "get_app_reload", "sometimes"),
    ],
)
def test_getter_invalid(settings, monkeypatch, env_var, method_name, test_value):
    monkeypatch.setenv(env_var, test_value)
    with pytest.raises(ValueError, match=env_var):
        getattr(settings, method_name)()


@pytest.mark.parametrize("run_mode, expected", [("dev", True), ("prod", False), ("test", False)])
def test_dev_mode(settings, monkeypatch, run_mode, expected):
    monkeypatch.setenv("RUN_MODE", run_mode)
    assert settings.dev_mode() is expected
