"""Session ID logging context for tracing turns across modules.

Every inbound turn belongs to one dialogue session. The turn service sets
the session id at the start of a turn so that the orchestrator, the
collaborators and the storage layer all log under the same id, even
when many callers are being served concurrently.

Usage:
    from civic_intake.logging_context import get_session_logger, set_session_id

    set_session_id("CA1234")
    logger = get_session_logger(__name__)
    logger.info("Processing turn")  # → [CA1234] Processing turn
"""

import logging
from contextvars import ContextVar

_session_id: ContextVar[str] = ContextVar("session_id", default="-")


def set_session_id(session_id: str) -> None:
    """Set the session id for the current thread or async context."""
    _session_id.set(session_id)


def get_session_id() -> str:
    """Retrieve the current session id."""
    return _session_id.get()


class SessionIdFilter(logging.Filter):
    """Injects session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger with the SessionIdFilter attached.

    The filter adds ``session_id`` to each record so formatters can
    include ``%(session_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger
