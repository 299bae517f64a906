"""
Logging for GraphTool: structlog rendering through stdlib handlers.

Diagnostics (retry warnings, rate-limit guidance, API call details) go to
stderr. Stdout carries only the action's own console output or the JSON
result document, so ``--output json`` runs can be piped safely. In that
mode log lines are rendered as JSON too.

The level comes from the resolved configuration (``--loglevel`` /
MSGRAPHLOGLEVEL, forced to DEBUG by ``--verbose``). httpx and httpcore log
every request URL, mailbox included, so they are held at WARNING unless
GraphTool itself runs at DEBUG.

Usage:
    from graphtool.logging_config import get_logger, setup_logging

    setup_logging(config.log_level, json_output=config.output == "json")
    logger = get_logger(__name__)
"""

from __future__ import annotations

import logging
import sys

import structlog


# MSGRAPHLOGLEVEL accepts the short "WARN" spelling as well
_LEVEL_ALIASES = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

# Transport libraries that log request lines at INFO
_HTTP_LOGGERS = ("httpx", "httpcore")


def parse_log_level(level: str | None) -> int:
    """Map a level name to a logging constant, defaulting to INFO."""
    if not level:
        return logging.INFO
    return _LEVEL_ALIASES.get(level.strip().upper(), logging.INFO)


def setup_logging(level: str | None = None, json_output: bool = False) -> None:
    """
    Route structlog and stdlib logging to a single stderr handler.

    Safe to call more than once; each call replaces the root handler.

    Args:
        level: Level name (DEBUG, INFO, WARN/WARNING, ERROR); unknown -> INFO
        json_output: Render one JSON object per line instead of console text
    """
    numeric_level = parse_log_level(level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    http_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["get_logger", "parse_log_level", "setup_logging"]
