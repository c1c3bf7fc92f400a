"""Logging helpers."""

from __future__ import annotations

import logging
from typing import IO, Optional

ROOT_LOGGER = "sshpass_net"

_HANDLER_ATTR = "_sshpass_net_handler"
_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(verbose: bool = False, stream: Optional[IO[str]] = None) -> None:
    """Send narration to stderr, at INFO when verbose and WARNING otherwise."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers = [
        existing
        for existing in logger.handlers
        if not getattr(existing, _HANDLER_ATTR, False)
    ]
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(_FORMAT))
    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
