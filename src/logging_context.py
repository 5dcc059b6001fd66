"""Correlation ID logging context for tracing a pharmacy call across modules.

Webhook deliveries, status polls, and agent tool calls for the same
provider call id all log with that id attached, so one check can be
followed from placement to verdict.

Usage:
    from src.logging_context import call_context, get_call_logger

    logger = get_call_logger(__name__)
    with call_context("CA1234"):
        logger.info("Transcription received")  # record.call_id == "CA1234"
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_call_id: ContextVar[str] = ContextVar("call_id", default="NO_CALL_ID")


def set_call_id(call_id: str) -> None:
    """Set the correlation ID for the current async context."""
    _call_id.set(call_id)


def get_call_id() -> str:
    """Retrieve the current correlation ID."""
    return _call_id.get()


@contextmanager
def call_context(call_id: str) -> Iterator[None]:
    """Bind ``call_id`` for the duration of the block, then restore the previous one."""
    token = _call_id.set(call_id)
    try:
        yield
    finally:
        _call_id.reset(token)


class CallIdFilter(logging.Filter):
    """Injects call_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.call_id = _call_id.get()  # type: ignore[attr-defined]
        return True


def get_call_logger(name: str) -> logging.Logger:
    """Return a logger with the CallIdFilter attached.

    The filter adds ``call_id`` to each record so formatters can
    include ``%(call_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CallIdFilter) for f in logger.filters):
        logger.addFilter(CallIdFilter())
    return logger
