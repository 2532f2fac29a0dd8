"""Error reporting for UI handlers and batch scripts."""
from __future__ import annotations

import logging
from typing import Optional

from pixelgrid.config import LOG_LEVEL

logger = logging.getLogger(__name__)

_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic root handler unless the host already configured one."""
    if not logging.getLogger().handlers:
        logging.basicConfig(level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO), format=_FORMAT)


def log_error(error: BaseException, context: str, user_id: Optional[str] = None) -> None:
    """
    Record a failed operation with its context. Never raises: a failure while
    logging is reported once on this module's logger and dropped.
    """
    try:
        logger.error(
            "%s failed (user=%s): %s",
            context,
            user_id or "-",
            str(error) or type(error).__name__,
            exc_info=(type(error), error, error.__traceback__),
        )
    except Exception as logging_error:  # logging handlers can raise on bad streams
        logger.warning("Failed to log error for %s: %r (original: %r)", context, logging_error, error)
