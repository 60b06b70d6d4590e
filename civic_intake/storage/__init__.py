from civic_intake.storage.db import create_engine_from_url, init_db, make_session_factory
from civic_intake.storage.session_store import (
    InMemorySessionStore,
    SessionStore,
    SqlSessionStore,
)

__all__ = [
    "create_engine_from_url",
    "init_db",
    "make_session_factory",
    "InMemorySessionStore",
    "SessionStore",
    "SqlSessionStore",
]
