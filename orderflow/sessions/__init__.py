"""Session store: durable per-(user, chat) conversation state.

The SessionService is constructed once at process start and injected
into the conversation machine and operational tooling.
"""

from orderflow.sessions.cache import SessionCache
from orderflow.sessions.locks import SessionLockManager
from orderflow.sessions.service import SessionService, SessionStats, SessionTransaction

__all__ = [
    "SessionCache",
    "SessionLockManager",
    "SessionService",
    "SessionStats",
    "SessionTransaction",
]
