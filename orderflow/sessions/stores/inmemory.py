"""In-memory implementation of SessionStorage."""

import json
from typing import Any

from orderflow.sessions.store import SessionStorage


class InMemorySessionStorage(SessionStorage):
    """In-memory implementation of SessionStorage for testing and development.

    Records are kept as serialized JSON so that callers never share
    mutable state with the storage, just as with a file.
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._records: dict[str, str] = {}

    async def read(self, key: str) -> Any | None:
        raw = self._records.get(key)
        return json.loads(raw) if raw is not None else None

    async def read_all(self) -> dict[str, Any]:
        return {key: json.loads(raw) for key, raw in self._records.items()}

    async def write(self, key: str, data: dict[str, Any]) -> None:
        self._records[key] = json.dumps(data)

    async def remove(self, key: str) -> bool:
        if key in self._records:
            del self._records[key]
            return True
        return False

    def put_raw(self, key: str, data: Any) -> None:
        """Store an arbitrary record without going through the service (test utility)."""
        self._records[key] = json.dumps(data)

    def clear(self) -> None:
        """Remove all records (test utility)."""
        self._records.clear()
