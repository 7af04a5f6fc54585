"""
Logging Configuration for Sales Warehouse Analytics

structlog renders both its own events and stdlib records through one
ProcessorFormatter, so library logs and analytics logs share a format.
Console output is human readable by default; LOG_FORMAT=json switches to
JSON lines, and LOG_FILE adds a JSON file sink.
"""

import logging
import sys
from typing import List, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import ProcessorFormatter, add_log_level
from structlog.typing import Processor

from warehouse_analytics.config.settings import get_settings

# Chatty third-party loggers capped at WARNING
QUIET_LOGGERS = ["faker", "faker.factory"]


def _shared_processors() -> List[Processor]:
    """Processors applied to structlog events and foreign stdlib records alike"""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def _handler(handler: logging.Handler, renderer: Processor, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=_shared_processors(),
    ))
    return handler


def configure_logging(log_level: Optional[str] = None) -> None:
    """
    Configure structured logging for the command line and batch runs.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
    """
    settings = get_settings()
    monitoring = settings.monitoring
    level_name = (log_level or monitoring.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    structlog.configure(
        processors=_shared_processors() + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers = [_handler(logging.StreamHandler(sys.stdout), _renderer(monitoring.log_format), level)]
    if monitoring.log_file:
        handlers.append(_handler(logging.FileHandler(monitoring.log_file), JSONRenderer(), level))

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.get_logger(__name__).debug(
        f"Logging configured for {settings.app_name} {settings.version}",
        env=settings.app_env,
        level=level_name,
        format=monitoring.log_format,
        log_file=monitoring.log_file,
    )


def get_logger(name: str):
    """Get a logger instance with the given name."""
    return structlog.get_logger(name)
