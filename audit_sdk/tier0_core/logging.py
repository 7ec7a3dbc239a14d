"""
audit_sdk.tier0_core.logging
─────────────────────────────
Structured logs for the audit pipeline itself: dropped documents, failed
index ensures, backend errors. The pipeline never raises into the host, so
these events (and the counters in metrics.py) are the only trace of a lost
document. Sensitive event keys are censored before rendering.

Only the "audit_sdk" stdlib logger gets a handler; the host application's
own logging setup is left alone.

Minimal stack: structlog (stdout JSON or console)
Configure via: AUDIT_LOG_LEVEL, AUDIT_LOG_FORMAT=json|console
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

from audit_sdk.tier0_core.redact import structlog_censor_processor

LOGGER_NAME = "audit_sdk"

_handler: logging.Handler | None = None


def _renderers(fmt: str) -> list[Any]:
    if fmt == "console":
        return [structlog.dev.ConsoleRenderer()]
    return [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    (Re)configure structlog and the "audit_sdk" handler. Arguments default
    to AUDIT_LOG_LEVEL (INFO) and AUDIT_LOG_FORMAT (json). Calling it again
    replaces the handler instead of adding a second one.
    """
    global _handler
    level = (level or os.getenv("AUDIT_LOG_LEVEL", "INFO")).upper()
    fmt = (fmt or os.getenv("AUDIT_LOG_FORMAT", "json")).lower()
    numeric_level = getattr(logging, level, logging.INFO)

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog_censor_processor,
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderers(fmt),
            ],
        )
    )

    sdk_logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        sdk_logger.removeHandler(_handler)
    sdk_logger.addHandler(handler)
    sdk_logger.setLevel(numeric_level)
    _handler = handler


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Return a structured logger, configuring logging on first use.

    Usage:
        log = get_logger(__name__)
        log.warning("audit.document_dropped", index="log_2020-h2", reason="write_failed")
    """
    if _handler is None:
        configure_logging()
    return structlog.get_logger(name or LOGGER_NAME)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every log event emitted from the current async context."""
    structlog.contextvars.bind_contextvars(**kwargs)


__all__ = ["LOGGER_NAME", "configure_logging", "get_logger", "bind_context"]
