"""
Logging — structlog over stdlib logging.

Library modules only do ``log = structlog.get_logger()``; nothing is
configured on import. Applications (or tests) call ``configure_logging``
once to pick a level and a console or JSON renderer.
"""

import logging
import sys
from typing import List, Optional

import structlog

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def level_from_name(name: str) -> int:
    """Stdlib level for a level name; unknown names fall back to INFO."""
    return _LEVEL_MAP.get(name.upper(), logging.INFO)


def is_valid_level(name: str) -> bool:
    return name.upper() in _LEVEL_MAP


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    stream=None,
) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR)
        json_format: Render JSON lines instead of console output
        stream: Output stream (default: stderr)
    """
    default_level = level_from_name(level)

    shared_processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(default_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Uncached so a later configure_logging call takes effect
        cache_logger_on_first_use=False,
    )

    out = stream if stream is not None else sys.stderr
    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=out.isatty(), pad_event_to=0)

    handler = logging.StreamHandler(out)
    handler.setLevel(default_level)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    ))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(default_level)
    root_logger.addHandler(handler)


def get_logger(name: Optional[str] = None):
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger
