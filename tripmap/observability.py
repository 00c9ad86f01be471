"""Logging setup.

Modules log through the standard library (``logging.getLogger(__name__)``)
and pass context in ``extra``. This module only decides how records are
rendered: a plain format string, or JSON lines through structlog's
stdlib ``ProcessorFormatter`` when ``structured`` is enabled.
"""

from __future__ import annotations

import logging
from typing import Optional

import structlog

from .config import ObservabilityConfig, get_config

_HANDLER_NAME = "tripmap"


def _json_formatter() -> logging.Formatter:
    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )


def configure_logging(config: Optional[ObservabilityConfig] = None) -> logging.Handler:
    """Attach a single handler for the ``tripmap`` logger tree.

    Calling it again replaces the previously installed handler, so it is
    safe to call from tests with different settings.

    Returns:
        The installed handler.
    """
    config = config or get_config().observability

    logger = logging.getLogger("tripmap")
    logger.setLevel(config.level.upper())
    for existing in list(logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logger.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if config.structured:
        handler.setFormatter(_json_formatter())
    else:
        handler.setFormatter(logging.Formatter(config.format))

    logger.addHandler(handler)
    return handler
