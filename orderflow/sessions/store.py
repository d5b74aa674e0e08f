"""SessionStorage abstract interface.

A SessionStorage is the physical medium behind the session service. It
deals in JSON-compatible records keyed by ``"<user_id>:<chat_id>"`` and
knows nothing about validation, caching or locking.
"""

from abc import ABC, abstractmethod
from typing import Any


class SessionStorage(ABC):
    """Abstract interface for session record storage."""

    @abstractmethod
    async def read(self, key: str) -> Any | None:
        """Get the raw record for a key, or None if absent."""
        pass

    @abstractmethod
    async def read_all(self) -> dict[str, Any]:
        """Get all raw records, keyed by record id, in storage order."""
        pass

    @abstractmethod
    async def write(self, key: str, data: dict[str, Any]) -> None:
        """Insert or replace the record for a key."""
        pass

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """Remove the record for a key. Returns False if it did not exist."""
        pass
