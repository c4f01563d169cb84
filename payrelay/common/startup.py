"""Startup-time helpers for safe config logging."""

import os

from payrelay.common.logging import logger

SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def _safe_env(name: str) -> str:
    """Return env value, redacting anything whose name looks like a secret."""

    value = os.getenv(name)
    if value is None:
        return "<unset>"
    if any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>"
    return value


def log_startup_config(service_name: str, keys: list[str]) -> dict[str, str]:
    """Log selected startup config keys for quick troubleshooting."""

    config = {"service": service_name}
    for key in keys:
        config[key] = _safe_env(key)
    logger.info("startup_config=%s", config)
    return config


def log_routes(routes: list[str]) -> None:
    """Log the served route table once the app is assembled."""

    logger.info("available_routes=%s", routes)
