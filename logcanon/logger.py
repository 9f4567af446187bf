"""Logging configuration."""

import logging
import sys
from typing import Union

import structlog


def configure_logging(level: Union[int, str] = logging.INFO, json_format: bool = True) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level, as a logging constant or name ("DEBUG", "INFO", ...)
        json_format: Render JSON lines instead of the console renderer
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
