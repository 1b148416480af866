"""Process-wide logging setup driven by ``config.logging``.

Modules log through ``logging.getLogger(__name__)``. This module only decides
how those records are rendered:

- ``simple``:   ``LEVEL message``
- ``detailed``: timestamp, level, logger name, message
- ``json``:     one JSON object per line, rendered by structlog's
  ``ProcessorFormatter`` so log shippers can parse it.
"""

from __future__ import annotations

import logging

import structlog

from typing_server.config import LoggingSettings

_SIMPLE_FORMAT = "%(levelname)s %(message)s"
_DETAILED_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


def _build_formatter(fmt: str) -> logging.Formatter:
    """Return the formatter for one of the configured log formats."""
    if fmt == "json":
        return structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso", utc=True),
            ],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
        )
    if fmt == "simple":
        return logging.Formatter(_SIMPLE_FORMAT)
    return logging.Formatter(_DETAILED_FORMAT)


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """
    Install a single stream handler on the root logger.

    Safe to call more than once: handlers installed by a previous call are
    replaced rather than stacked.

    Args:
        settings: Logging section to apply. Defaults to the loaded config.
    """
    if settings is None:
        from typing_server.config import config

        settings = config.logging

    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(_build_formatter(settings.format))
    handler.set_name("typing_server")

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == "typing_server":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
