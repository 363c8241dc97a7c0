import os

from dotenv import load_dotenv

# Load .env file variables into environment
load_dotenv(verbose=True)

_TRUE_VALUES = ("true", "1", "yes")
_FALSE_VALUES = ("false", "0", "no")


class Settings:
    """Application configuration settings loaded from environment variables."""

    # --- Cache Settings ---
    def get_cache_path(self) -> str:
        """Returns the root directory of the derived artifact cache."""
        path = os.getenv("IMAGE_CACHE_PATH", "./var/cache")
        if not path:
            raise ValueError("IMAGE_CACHE_PATH environment variable must not be empty.")
        return path

    def get_cache_enabled(self) -> bool:
        """Returns whether the transformation cache listener should be registered."""
        return self._get_bool("IMAGE_CACHE_ENABLED", "true")

    # --- Asset Store Settings ---
    def get_asset_store_path(self) -> str:
        """Returns the root directory where original images are stored."""
        path = os.getenv("ASSET_STORE_PATH", "./var/assets")
        if not path:
            raise ValueError("ASSET_STORE_PATH environment variable must not be empty.")
        return path

    # --- Logging Settings ---
    def get_log_level(self, default: str = "INFO") -> str:
        """Gets the configured log level, defaulting if not set."""
        return os.getenv("LOG_LEVEL", default).upper()

    def get_loki_url(self) -> str | None:
        """Returns the Loki base URL logs are shipped to, or None when unset."""
        return os.getenv("LOKI_URL") or None

    # --- Server Settings ---
    def get_app_host(self) -> str:
        return os.getenv("APP_HOST", "0.0.0.0")  # nosec B104

    def get_app_port(self) -> int:
        """Returns the port the server listens on."""
        port_str = os.getenv("APP_PORT", "8000")
        try:
            return int(port_str)
        except ValueError:
            raise ValueError("APP_PORT environment variable must be an integer.")

    def get_app_reload(self) -> bool:
        return self._get_bool("APP_RELOAD", "false")

    def get_run_mode(self) -> str:
        """Returns the run mode, defaulting to 'prod' if not set."""
        return os.getenv("RUN_MODE", "prod")

    def dev_mode(self) -> bool:
        """Returns True if the run mode is 'dev', False otherwise."""
        return self.get_run_mode() == "dev"

    def _get_bool(self, name: str, default: str) -> bool:
        value = os.getenv(name, default).strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ValueError(f"{name} environment variable must be a boolean (true/false), got '{value}'.")
