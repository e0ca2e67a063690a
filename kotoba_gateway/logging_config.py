"""Structlog configuration for the gateway process."""

import logging
import sys

import structlog
from structlog.contextvars import merge_contextvars
from structlog.typing import Processor


def configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog on top of standard library logging.

    Args:
        log_level: Minimum level name (e.g. "INFO").
        log_format: "json" for log aggregation, anything else for
            human-readable console output.
    """
    shared: list[Processor] = [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]

    if log_format.lower() == "json":
        processors = shared + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared + [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    logging.basicConfig(
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
