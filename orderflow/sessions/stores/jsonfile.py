"""JSON file implementation of SessionStorage.

The whole collection lives in one file:

    {"sessions": [{"id": "<user_id>:<chat_id>", "data": {...}}, ...]}

Every write reads the collection, patches one record and rewrites the
file. Rewrites go to a temporary file in the same directory which is
fsynced and then moved over the original with ``os.replace``, so a crash
mid-write leaves either the old or the new collection, never a truncated
one. Physical writes are serialized by a storage-wide lock; per-session
locking is the service's job.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from orderflow.errors import StorageCorruptedError, StorageIOError
from orderflow.observability.logging import get_logger
from orderflow.sessions.store import SessionStorage

logger = get_logger(__name__)


class JsonFileSessionStorage(SessionStorage):
    """Whole-file JSON storage with atomic replace writes."""

    def __init__(self, path: str | Path, indent: int | None = 2) -> None:
        """Initialize file storage.

        Args:
            path: Backing file; created on first write if missing
            indent: JSON indentation (None for compact output)
        """
        self._path = Path(path).expanduser()
        self._indent = indent
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def read(self, key: str) -> Any | None:
        records = await self._load()
        return records.get(key)

    async def read_all(self) -> dict[str, Any]:
        return await self._load()

    async def write(self, key: str, data: dict[str, Any]) -> None:
        async with self._write_lock:
            records = await self._load()
            records[key] = data
            await self._dump(records)

    async def remove(self, key: str) -> bool:
        async with self._write_lock:
            records = await self._load()
            if key not in records:
                return False
            del records[key]
            await self._dump(records)
            return True

    async def _load(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._read_file)

    async def _dump(self, records: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write_file, records)

    def _read_file(self) -> dict[str, Any]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageIOError(f"Failed to read {self._path}: {e}", cause=e) from e

        if not text.strip():
            return {}

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageCorruptedError(
                f"Session file {self._path} is not valid JSON: {e}", cause=e
            ) from e

        if not isinstance(payload, dict) or not isinstance(payload.get("sessions"), list):
            raise StorageCorruptedError(
                f"Session file {self._path} has no 'sessions' collection"
            )

        records: dict[str, Any] = {}
        for entry in payload["sessions"]:
            if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
                logger.warning("session_record_malformed", path=str(self._path))
                continue
            records[entry["id"]] = entry.get("data")
        return records

    def _write_file(self, records: dict[str, Any]) -> None:
        payload = {
            "sessions": [{"id": key, "data": data} for key, data in records.items()]
        }
        text = json.dumps(payload, indent=self._indent, ensure_ascii=False)

        directory = self._path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise StorageIOError(f"Failed to write {self._path}: {e}", cause=e) from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
