# Logging for the image server: console output, optional shipping to Loki,
# per-listener dispatch records and JSON error bodies.

import logging
import sys
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pixelpipe.settings import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_LOG_LEVEL = "INFO"

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Pillow logs every plugin it tries while decoding; uvicorn.access logs one line per image served.
NOISY_LIBRARIES = ["PIL", "httpx", "uvicorn.access"]

# Receives one record per listener invocation.
DISPATCH_LOGGER = "pixelpipe.events.dispatch"

LOKI_PUSH_PATH = "/loki/api/v1/push"


def resolve_log_level(name: str) -> str:
    """Returns the level to configure for a LOG_LEVEL value.

    Unknown names fall back to INFO with a warning on stderr, since logging
    is not configured yet at that point.
    """
    level = name.strip().upper()
    if level in VALID_LOG_LEVELS:
        return level
    print(
        f"WARNING: Invalid LOG_LEVEL '{name}'. "
        f"Defaulting to {DEFAULT_LOG_LEVEL}. "
        f"Valid levels are: {', '.join(VALID_LOG_LEVELS)}",
        file=sys.stderr,
    )
    return DEFAULT_LOG_LEVEL


def _get_loki_handler(loki_url: str, run_mode: str, app_name: str = "pixelpipe") -> Optional[logging.Handler]:
    """
    Build a handler shipping records to Loki, labelled with the run mode.

    Args:
        loki_url: Base URL of the Loki service, e.g. ``http://loki:3100``.
        run_mode: Value of RUN_MODE, used as the ``run_mode`` label.
        app_name: Value of the ``application`` label.

    Returns:
        The handler, or None if the URL is malformed or python-logging-loki
        is not installed. Console logging is unaffected either way.
    """
    logger = logging.getLogger(__name__)

    parsed = urlparse(loki_url)
    if not parsed.scheme or not parsed.netloc:
        logger.warning(f"Ignoring LOKI_URL without scheme and host: {loki_url}")
        return None

    try:
        from logging_loki import LokiHandler
    except ImportError:
        logger.warning("LOKI_URL is set but python-logging-loki is not installed; install the 'loki' extra")
        return None

    handler = LokiHandler(
        url=loki_url.rstrip("/") + LOKI_PUSH_PATH,
        tags={"application": app_name, "run_mode": run_mode},
        version="1",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logging(settings: Optional[Settings] = None) -> str:
    """
    Configure the root logger from settings.

    Replaces any existing root handlers with a stderr handler, plus a Loki
    handler when LOKI_URL is configured, and quiets the libraries that log
    per image.

    Args:
        settings: Settings to read from. A fresh instance is used if omitted.

    Returns:
        The name of the level that was applied.
    """
    settings = settings or Settings()
    level_name = resolve_log_level(settings.get_log_level(default=DEFAULT_LOG_LEVEL))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handlers: List[logging.Handler] = [console_handler]

    loki_url = settings.get_loki_url()
    if loki_url:
        loki_handler = _get_loki_handler(loki_url, settings.get_run_mode())
        if loki_handler is not None:
            handlers.append(loki_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level_name)
    root_logger.handlers.clear()
    for handler in handlers:
        root_logger.addHandler(handler)

    for lib_name in NOISY_LIBRARIES:
        logging.getLogger(lib_name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured with level {level_name}.")
    if len(handlers) > 1:
        logger.info(f"Shipping logs to Loki at {loki_url}.")
    return level_name


# Dispatch logging utilities


def log_dispatch(
    event_name: str,
    listener_name: str,
    status: str,
    duration: Optional[float] = None,
    error: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Log the outcome of a single listener invocation."""
    logger = logging.getLogger(DISPATCH_LOGGER)
    log_data = {
        "event_name": event_name,
        "listener_name": listener_name,
        "status": status,
    }

    if duration is not None:
        log_data["duration_seconds"] = str(duration)

    if error:
        log_data["error"] = error

    if details:
        log_data.update(details)

    if status == "error":
        logger.error(f"[{event_name}] Listener {listener_name} failed", extra=log_data)
    else:
        logger.debug(f"[{event_name}] Listener {listener_name} {status}", extra=log_data)


def create_error_response(
    status_code: int,
    message: str,
    error_code: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    include_debug_info: bool = False,
) -> Dict[str, Any]:
    """Create the JSON body returned for a failed operation."""
    response: Dict[str, Any] = {
        "error": {
            "code": status_code,
            "message": message,
            "errorCode": error_code,
        },
    }

    if include_debug_info and details:
        response["debug"] = str({"timestamp": datetime.now(UTC).isoformat(), **details})

    return response
