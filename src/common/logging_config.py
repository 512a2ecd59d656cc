"""
Structured logging configuration using structlog.

Produces JSON lines by default and coloured console output at DEBUG.
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

import structlog

from .config import ENV_LOG_LEVEL, _getenv


def setup_logging(log_level: Optional[str] = None) -> None:
    """Route stdlib logging through structlog.

    Args:
        log_level: Override log level (default: `USE_WALLET_LOG_LEVEL`, else WARNING)
    """
    name = (log_level or _getenv(ENV_LOG_LEVEL, "WARNING")).upper()
    level = getattr(logging, name, logging.WARNING)
    is_dev = level == logging.DEBUG

    shared_processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if is_dev:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Quiet noisy third-party loggers
    for noisy in ("httpcore", "httpx", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
