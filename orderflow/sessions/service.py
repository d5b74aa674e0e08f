"""Session service: the durable, concurrency-safe session container.

All read-modify-write sequences for one session key run under that key's
lock, so updates for the same user are applied in lock acquisition order
while different users never wait on each other.

Reads are served from a short-lived cache when possible. Writes bypass
the cache on the read side to avoid applying changes on a stale base.
"""

from collections import Counter
from collections.abc import AsyncGenerator, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from orderflow.compaction.models import SizeReport
from orderflow.compaction.optimizer import SessionOptimizer
from orderflow.config.settings import Settings
from orderflow.errors import SessionNotFoundError, SessionValidationError
from orderflow.observability.logging import get_logger
from orderflow.observability.metrics import (
    ACTIVE_SESSIONS,
    SESSION_CACHE,
    SESSION_OPERATIONS,
    SESSION_VALIDATION_FAILURES,
)
from orderflow.sessions.cache import SessionCache
from orderflow.sessions.locks import SessionLockManager
from orderflow.sessions.models import Language, Session, SessionKey, default_session
from orderflow.sessions.store import SessionStorage
from orderflow.sessions.stores import InMemorySessionStorage, JsonFileSessionStorage
from orderflow.sessions.validation import (
    format_validation_errors,
    parse_session,
    validate_session,
)

logger = get_logger(__name__)


class SessionStats(BaseModel):
    """Aggregate counts over all stored sessions."""

    total: int = Field(default=0, ge=0)
    registered: int = Field(default=0, ge=0)
    with_cart: int = Field(default=0, ge=0, description="Sessions with a non-empty cart")
    languages: dict[str, int] = Field(default_factory=dict)


@dataclass
class SessionTransaction:
    """Mutable working copy of a session during one locked event.

    Handlers may mutate ``session`` in place or replace it entirely.
    """

    key: SessionKey
    session: Session


class SessionService:
    """Get, save, update and delete sessions keyed by (user_id, chat_id)."""

    def __init__(
        self,
        storage: SessionStorage,
        optimizer: SessionOptimizer | None = None,
        lock_manager: SessionLockManager | None = None,
        cache_ttl_seconds: float = 300.0,
        default_language: Language | str = Language.EN,
        max_history: int = 10,
        cache: SessionCache | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            storage: Physical medium for session records
            optimizer: Reactive compaction on save
            lock_manager: Per-key locks (10s 'proceed' policy when omitted)
            cache_ttl_seconds: Freshness window of cached reads (0 disables)
            default_language: Language of newly created sessions
            max_history: Scene history bound checked on read
            cache: Read cache (built from cache_ttl_seconds when omitted)
        """
        self._storage = storage
        self._optimizer = optimizer or SessionOptimizer(max_history=max_history)
        self._locks = lock_manager or SessionLockManager()
        self._cache = cache if cache is not None else SessionCache(cache_ttl_seconds)
        self._default_language = Language(default_language)
        self._max_history = max_history

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionService":
        """Build a service from application settings."""
        storage_config = settings.storage
        storage: SessionStorage
        if storage_config.backend == "inmemory":
            storage = InMemorySessionStorage()
        else:
            storage = JsonFileSessionStorage(
                storage_config.path, indent=storage_config.json_indent
            )

        return cls(
            storage=storage,
            optimizer=SessionOptimizer(
                settings.compaction, max_history=settings.flow.breadcrumb_depth
            ),
            lock_manager=SessionLockManager(
                timeout=storage_config.lock_timeout_seconds,
                policy=storage_config.lock_timeout_policy,
            ),
            cache_ttl_seconds=storage_config.cache_ttl_seconds,
            default_language=storage_config.default_language,
            max_history=settings.flow.breadcrumb_depth,
        )

    @property
    def storage(self) -> SessionStorage:
        return self._storage

    @property
    def optimizer(self) -> SessionOptimizer:
        return self._optimizer

    @property
    def cache(self) -> SessionCache:
        return self._cache

    def new_session(self) -> Session:
        """Fresh default session in the configured language."""
        return default_session(self._default_language)

    async def get(self, user_id: int, chat_id: int) -> Session:
        """Get a session, creating it on first access.

        Invalid stored records are replaced by a persisted default session;
        this never raises a validation error.
        """
        key = str(SessionKey(user_id=user_id, chat_id=chat_id))

        cached = self._cache.get(key)
        if cached is not None:
            SESSION_CACHE.labels(result="hit").inc()
            return cached
        SESSION_CACHE.labels(result="miss").inc()

        async with self._locks.acquire(key):
            session, found = await self._load(key)
            if not found:
                await self._persist(key, session)

        self._cache.set(key, session)
        SESSION_OPERATIONS.labels(operation="get", outcome="ok").inc()
        return session

    async def save(self, user_id: int, chat_id: int, session: Session) -> Session:
        """Validate, compact and persist a whole session.

        The caller's object is not modified.

        Returns:
            Copy of the session as stored

        Raises:
            SessionValidationError: The session breaks a validation rule
            StorageIOError: The backing medium could not be written
        """
        key = str(SessionKey(user_id=user_id, chat_id=chat_id))
        async with self._locks.acquire(key):
            stored = await self._store(key, session, operation="save")
        return stored.model_copy(deep=True)

    async def update(
        self, user_id: int, chat_id: int, changes: Mapping[str, Any]
    ) -> Session:
        """Merge top-level field changes into the stored session.

        The current version is read from storage, not the cache, while the
        key lock is held.

        Returns:
            The merged session as stored

        Raises:
            SessionValidationError: Unknown fields or an invalid result
            StorageIOError: The backing medium could not be read or written
        """
        key = str(SessionKey(user_id=user_id, chat_id=chat_id))

        unknown = sorted(set(changes) - set(Session.model_fields))
        if unknown:
            SESSION_OPERATIONS.labels(operation="update", outcome="invalid").inc()
            raise SessionValidationError([f"Unknown session field: {name}" for name in unknown])

        async with self._locks.acquire(key):
            current, _ = await self._load(key)
            data = current.model_dump()
            data.update(changes)
            try:
                merged = Session.model_validate(data)
            except ValidationError as e:
                SESSION_OPERATIONS.labels(operation="update", outcome="invalid").inc()
                raise SessionValidationError(format_validation_errors(e), cause=e) from e

            stored = await self._store(key, merged, operation="update")

        return stored.model_copy(deep=True)

    @asynccontextmanager
    async def transaction(
        self, user_id: int, chat_id: int
    ) -> AsyncGenerator[SessionTransaction, None]:
        """Locked read-modify-write of one session.

        Yields a working copy loaded from storage. On a clean exit the
        copy is validated, compacted and persisted; if the block raises,
        nothing is written.

        Usage:
            async with service.transaction(111, 222) as tx:
                tx.session.cart = tx.session.cart.add_item(5, "Pizza", 25000)
        """
        session_key = SessionKey(user_id=user_id, chat_id=chat_id)
        key = str(session_key)

        async with self._locks.acquire(key):
            current, _ = await self._load(key)
            tx = SessionTransaction(key=session_key, session=current)
            yield tx
            await self._store(key, tx.session, operation="transaction")

    async def delete(self, user_id: int, chat_id: int) -> bool:
        """Remove a session from storage and cache.

        Returns:
            True if a stored record was removed
        """
        key = str(SessionKey(user_id=user_id, chat_id=chat_id))
        async with self._locks.acquire(key):
            removed = await self._storage.remove(key)
            self._cache.delete(key)

        SESSION_OPERATIONS.labels(operation="delete", outcome="ok").inc()
        logger.info("session_deleted", key=key, removed=removed)
        return removed

    async def delete_if(
        self, user_id: int, chat_id: int, predicate: Callable[[Session], bool]
    ) -> bool:
        """Remove a session only if its current stored version matches.

        The record is re-read from storage under the key lock, so a decision
        taken on an older snapshot cannot erase a newer write. Missing or
        unparseable records are left alone.

        Returns:
            True if the record was removed
        """
        key = str(SessionKey(user_id=user_id, chat_id=chat_id))
        async with self._locks.acquire(key):
            data = await self._storage.read(key)
            if data is None:
                return False
            current, errors = parse_session(data, self._max_history)
            if current is None or errors or not predicate(current):
                return False
            removed = await self._storage.remove(key)
            self._cache.delete(key)

        SESSION_OPERATIONS.labels(operation="delete", outcome="ok").inc()
        logger.info("session_deleted", key=key, removed=removed, conditional=True)
        return removed

    async def find(self, user_id: int, chat_id: int) -> Session:
        """Read a stored session without creating or repairing anything.

        Raises:
            SessionNotFoundError: No record exists for the key
            SessionValidationError: The stored record is invalid
        """
        key = str(SessionKey(user_id=user_id, chat_id=chat_id))
        data = await self._storage.read(key)
        if data is None:
            raise SessionNotFoundError(key)

        session, errors = parse_session(data, self._max_history)
        if session is None or errors:
            raise SessionValidationError(errors or ["record could not be parsed"])
        return session

    async def list_all(self) -> list[tuple[SessionKey, Session]]:
        """All parseable stored sessions, in storage order.

        Records that fail to parse or validate are skipped with a warning.
        """
        records = await self._storage.read_all()
        sessions: list[tuple[SessionKey, Session]] = []

        for raw_key, data in records.items():
            try:
                key = SessionKey.parse(raw_key)
            except ValueError:
                logger.warning("session_key_invalid", key=raw_key)
                continue

            session, errors = parse_session(data, self._max_history)
            if session is None or errors:
                logger.warning("session_record_skipped", key=raw_key, errors=errors)
                continue
            sessions.append((key, session))

        return sessions

    async def check_size(self, user_id: int, chat_id: int) -> SizeReport:
        """Size report for one session."""
        session = await self.get(user_id, chat_id)
        return self._optimizer.check_size(session)

    async def stats(self) -> SessionStats:
        """Counts of total, registered and cart-holding sessions and languages."""
        sessions = await self.list_all()
        languages: Counter[str] = Counter()
        stats = SessionStats(total=len(sessions))

        for _, session in sessions:
            if session.registered:
                stats.registered += 1
            if not session.cart.is_empty():
                stats.with_cart += 1
            languages[session.language.value] += 1

        stats.languages = dict(languages)
        ACTIVE_SESSIONS.set(stats.total)
        return stats

    async def _load(self, key: str) -> tuple[Session, bool]:
        """Read and validate the stored record, bypassing the cache.

        Returns:
            Tuple of (session, found). A missing record yields a new default
            session with found=False. An invalid record is replaced by a
            persisted default session.
        """
        data = await self._storage.read(key)
        if data is None:
            logger.info("session_created", key=key)
            return self.new_session(), False

        session, errors = parse_session(data, self._max_history)
        if session is None or errors:
            SESSION_VALIDATION_FAILURES.inc()
            logger.warning("session_invalid_replaced", key=key, errors=errors)
            session = self.new_session()
            await self._persist(key, session)

        return session, True

    async def _store(self, key: str, session: Session, operation: str) -> Session:
        """Validate, compact, persist and cache a session. Lock must be held."""
        errors = validate_session(session)
        if errors:
            SESSION_OPERATIONS.labels(operation=operation, outcome="invalid").inc()
            logger.warning("session_rejected", key=key, operation=operation, errors=errors)
            raise SessionValidationError(errors)

        compacted = self._optimizer.compact_for_save(key, session)
        await self._persist(key, compacted)
        self._cache.set(key, compacted)

        SESSION_OPERATIONS.labels(operation=operation, outcome="ok").inc()
        logger.debug("session_saved", key=key, operation=operation)
        return compacted

    async def _persist(self, key: str, session: Session) -> None:
        try:
            await self._storage.write(key, session.model_dump(mode="json"))
        except Exception:
            SESSION_OPERATIONS.labels(operation="write", outcome="error").inc()
            logger.error("session_write_failed", key=key)
            raise
