"""Session ID logging context for tracing one storefront visit across modules.

Provides a session_id-aware logger that attaches a correlation ID to every
log message, so a single customer's path from availability search to
booking confirmation can be followed in the logs.

Usage:
    from storefront.logging_context import get_session_logger, set_session_id

    set_session_id("SESSION-abc123")
    logger = get_session_logger(__name__)
    logger.info("Fetching availability")  # record.session_id == "SESSION-abc123"

load_config() installs the filter on the root handlers and prints the id
right after the level:

    2025-03-10 14:00:00 [storefront.booking] INFO [SESSION-abc123]: Fetching availability

Records from loggers that never went through get_session_logger() are
tagged by the handler filter too, and show NO_SESSION_ID outside a session.
"""

import logging
import uuid
from contextvars import ContextVar

_session_id: ContextVar[str] = ContextVar("session_id", default="NO_SESSION_ID")


def set_session_id(session_id: str) -> None:
    """Set the correlation ID for the current async context."""
    _session_id.set(session_id)


def get_session_id() -> str:
    """Retrieve the current correlation ID."""
    return _session_id.get()


def new_session_id() -> str:
    """Generate and activate a fresh session ID."""
    session_id = f"SESSION-{uuid.uuid4().hex[:8]}"
    set_session_id(session_id)
    return session_id


class SessionIdFilter(logging.Filter):
    """Injects session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def attach_session_filter(handler: logging.Handler) -> None:
    """Add a SessionIdFilter to a handler so every record it emits has session_id."""
    if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
        handler.addFilter(SessionIdFilter())


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger with the SessionIdFilter attached.

    The filter adds ``session_id`` to each record so formatters can
    include ``%(session_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger
