"""Startup-time helpers for safe config logging."""

from payrelay.common.config import RelaySettings
from payrelay.common.logging import logger

SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def _safe_value(name: str, value) -> str:
    """Return a printable value, redacting secret-like setting names."""

    if value is None:
        return "<unset>"
    if any(marker in name.upper() for marker in SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def log_startup_config(settings: RelaySettings) -> dict[str, str]:
    """Log the effective settings for quick troubleshooting."""

    config = {"service": settings.service_name}
    for name, value in settings.model_dump().items():
        config[name.upper()] = _safe_value(name, value)
    config["PROCESSOR_BASE_URL"] = settings.processor_base_url
    logger.info("startup_config=%s", config)
    return config
