"""
Opt-in logging setup for applications embedding the SDK.

The SDK itself only creates module loggers; call configure_logging() from
an application entry point to get a stdout handler. The level comes from
the argument, or HAP_LOG_LEVEL via hapkit.config.
"""

import logging
import sys

from hapkit.config import settings

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"
_CONFIGURED = False


def _resolve_level(name: str | None) -> int:
    if not name:
        return logging.INFO
    return getattr(logging, name.strip().upper(), logging.INFO)


def configure_logging(level: str | None = None, *, force: bool = False) -> None:
    """
    Configure the "hapkit" logger to stream to stdout.

    Args:
        level: Level name; defaults to settings.log_level
        force: When True, existing handlers are replaced
    """
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    sdk_logger = logging.getLogger("hapkit")
    if force:
        for handler in list(sdk_logger.handlers):
            sdk_logger.removeHandler(handler)

    resolved = _resolve_level(level or settings.log_level)
    sdk_logger.setLevel(resolved)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT))
    sdk_logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(logging.WARNING, resolved))

    _CONFIGURED = True
