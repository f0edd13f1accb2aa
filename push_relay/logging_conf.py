"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path

import structlog

_LOGGING_INITIALISED = False
_STRUCTLOG_CONFIGURED = False

ROOT_LOGGER = "push_relay"


def configure_logging(verbose: bool = False, log_file: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger.

    Console output goes to stderr and only exists when ``verbose`` is set;
    stdout carries the relayed events and must stay clean.
    """

    global _LOGGING_INITIALISED, _STRUCTLOG_CONFIGURED
    level = "DEBUG" if verbose else "INFO"
    handlers: dict[str, dict] = {
        "null": {"class": "logging.NullHandler"},
    }
    active = ["null"]
    if verbose:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "plain",
            "stream": "ext://sys.stderr",
        }
        active.append("console")
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers["relay_file"] = {
            "class": "logging.FileHandler",
            "level": level,
            "filename": str(log_file),
            "formatter": "plain",
            "encoding": "utf-8",
        }
        active.append("relay_file")

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {
                    "()": "pythonjsonlogger.json.JsonFormatter",
                    "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                }
            },
            "handlers": handlers,
            "loggers": {
                ROOT_LOGGER: {
                    "handlers": active,
                    "level": level,
                    "propagate": False,
                },
            },
        }
    )

    if not _STRUCTLOG_CONFIGURED:
        # Forward to stdlib; JSON rendering happens at the handler level
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _STRUCTLOG_CONFIGURED = True
    _LOGGING_INITIALISED = True
    return structlog.get_logger(ROOT_LOGGER)


def get_logger(name: str = ROOT_LOGGER, **bindings: object) -> structlog.BoundLogger:
    """Return a bound logger, applying the quiet default configuration on first use."""

    if not _LOGGING_INITIALISED:
        configure_logging()
    logger = structlog.get_logger(name)
    return logger.bind(**bindings) if bindings else logger


__all__ = ["ROOT_LOGGER", "configure_logging", "get_logger"]
