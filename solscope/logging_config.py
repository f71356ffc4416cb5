"""
Structured logging configuration using structlog.

Produces JSON logs in production, human-readable colored logs in development.
Every solscope module logs through ``logging.getLogger(__name__)``; those
records are rendered by the same processor chain as structlog loggers.
"""

import logging
import sys
from typing import Optional

import structlog

from . import __version__
from .config import settings

NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _add_service_info(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", "solscope")
    event_dict.setdefault("version", __version__)
    return event_dict


def setup_logging(log_level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: from settings.log_level)
        json_logs: Force JSON (True) or console (False) output; by default
            DEBUG gets the console renderer and every other level JSON lines
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    use_json = level != logging.DEBUG if json_logs is None else json_logs

    # Shared processors for both structlog and stdlib records
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        # Production: JSON lines tagged with the service name
        shared_processors.append(_add_service_info)
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        # Development: colored console output
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Queue, provider and aggregator modules use plain stdlib loggers, so
    # their records need the shared chain as foreign_pre_chain.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Quiet noisy third-party loggers (one line per RPC / DexScreener request otherwise)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
