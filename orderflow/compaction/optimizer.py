"""Session size and age management.

The optimizer keeps sessions small in two places:

- Reactively, on every save: cheap bounds are always enforced, and an
  oversized session is fully optimized when that saves enough.
- Periodically, in sweeps over the whole store: stale sessions are
  hard-deleted and oversized ones are rewritten.

``optimize`` itself is pure. Only the save path and ``sweep`` persist.
"""

import json
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from orderflow.clock import ensure_aware, utc_now
from orderflow.compaction.models import (
    MemoryStats,
    OptimizationReport,
    SizeReason,
    SizeReport,
    SweepResult,
)
from orderflow.config.models.compaction import CompactionConfig
from orderflow.observability.logging import get_logger
from orderflow.observability.metrics import (
    ACTIVE_SESSIONS,
    COMPACTION_BYTES_SAVED,
    SESSION_SIZE_BYTES,
    SESSIONS_COMPACTED,
    SESSIONS_REMOVED,
)
from orderflow.sessions.models import Session, SessionKey, TransientSelection

if TYPE_CHECKING:
    from orderflow.sessions.service import SessionService

logger = get_logger(__name__)

# Fields kept when a catalog entity is demoted to a snapshot
PRODUCT_SNAPSHOT_FIELDS = ("id", "name", "price")
CATEGORY_SNAPSHOT_FIELDS = ("id", "name")


class SessionOptimizer:
    """Measures, compacts and expires sessions."""

    def __init__(
        self,
        config: CompactionConfig | None = None,
        max_history: int = 10,
    ) -> None:
        """Initialize optimizer.

        Args:
            config: Compaction thresholds (defaults when omitted)
            max_history: Depth of the scene history kept for back navigation
        """
        self._config = config or CompactionConfig()
        self._max_history = max_history

    @property
    def config(self) -> CompactionConfig:
        return self._config

    def measure(self, session: Session) -> int:
        """Serialized size of a session in UTF-8 bytes."""
        return len(session.model_dump_json().encode("utf-8"))

    def check_size(self, session: Session) -> SizeReport:
        """Compare a session against the size threshold and explain its size."""
        size = self.measure(session)
        reasons: list[SizeReason] = []
        selection = session.selection

        if selection.catalog_cache:
            reasons.append(SizeReason.CATALOG_CACHE)
        if selection.selected_product is not None:
            product_size = len(
                json.dumps(selection.selected_product, default=str).encode("utf-8")
            )
            if product_size > self._config.selected_product_warn_bytes:
                reasons.append(SizeReason.LARGE_SELECTED_PRODUCT)
        if len(selection.product_quantities) > self._config.product_quantity_warn:
            reasons.append(SizeReason.MANY_PRODUCT_QUANTITIES)
        if len(session.cart.items) > self._config.cart_items_warn:
            reasons.append(SizeReason.LARGE_CART)

        return SizeReport(
            is_oversized=size > self._config.size_threshold_bytes,
            size_bytes=size,
            threshold_bytes=self._config.size_threshold_bytes,
            reasons=reasons,
        )

    def optimize(
        self, session: Session, now: datetime | None = None
    ) -> tuple[Session, OptimizationReport]:
        """Strip refetchable and expired data from a copy of the session.

        Deterministic and idempotent. Cart items are never touched, and
        selected catalog entities keep their identity as snapshots.

        Returns:
            Tuple of (optimized copy, report)
        """
        now = now or utc_now()
        original_size = self.measure(session)
        optimized = session.model_copy(deep=True)
        removed: list[str] = []

        selection = optimized.selection
        ttl = timedelta(seconds=self._config.transient_ttl_seconds)
        if (
            not selection.is_empty()
            and selection.touched_at is not None
            and now - ensure_aware(selection.touched_at) > ttl
        ):
            optimized.selection = TransientSelection()
            removed.append("selection")
        else:
            if selection.catalog_cache:
                selection.catalog_cache = {}
                removed.append("selection.catalog_cache")

            language = optimized.language.value
            if selection.selected_product is not None:
                snapshot = demote(selection.selected_product, PRODUCT_SNAPSHOT_FIELDS, language)
                if snapshot != selection.selected_product:
                    selection.selected_product = snapshot
                    removed.append("selection.selected_product")
            if selection.selected_category is not None:
                snapshot = demote(selection.selected_category, CATEGORY_SNAPSHOT_FIELDS, language)
                if snapshot != selection.selected_category:
                    selection.selected_category = snapshot
                    removed.append("selection.selected_category")

            if self._trim_quantities(selection):
                removed.append("selection.product_quantities")

        pending = optimized.scene.pending
        if pending is not None and pending.owner != optimized.scene.current:
            optimized.scene.pending = None
            removed.append(f"scene.pending.{pending.kind}")

        if self._trim_history(optimized):
            removed.append("scene.history")

        report = OptimizationReport(
            original_size=original_size,
            optimized_size=self.measure(optimized),
            removed_fields=removed,
        )
        return optimized, report

    def enforce_bounds(self, session: Session) -> Session:
        """Apply the always-on size bounds, returning a copy when anything changed."""
        selection = session.selection
        if (
            len(selection.product_quantities) <= self._config.product_quantity_limit
            and len(session.scene.history) <= self._max_history
        ):
            return session

        bounded = session.model_copy(deep=True)
        self._trim_quantities(bounded.selection)
        self._trim_history(bounded)
        return bounded

    def compact_for_save(
        self, key: str, session: Session, now: datetime | None = None
    ) -> Session:
        """Reactive compaction on the save path.

        Bounds are always enforced. A full optimization is only kept for
        oversized sessions and only when it saves more than the reactive
        minimum improvement.
        """
        bounded = self.enforce_bounds(session)
        report = self.check_size(bounded)
        SESSION_SIZE_BYTES.observe(report.size_bytes)

        if not report.is_oversized:
            return bounded

        optimized, optimization = self.optimize(bounded, now)
        if optimization.compression_ratio > self._config.reactive_min_improvement:
            SESSIONS_COMPACTED.labels(path="reactive").inc()
            COMPACTION_BYTES_SAVED.inc(optimization.bytes_saved)
            logger.info(
                "session_compacted",
                key=key,
                path="reactive",
                original_size=optimization.original_size,
                optimized_size=optimization.optimized_size,
                removed_fields=optimization.removed_fields,
            )
            return optimized

        logger.warning(
            "session_oversized",
            key=key,
            size_bytes=report.size_bytes,
            reasons=[reason.value for reason in report.reasons],
            compression_ratio=round(optimization.compression_ratio, 3),
        )
        return bounded

    def last_activity(self, session: Session) -> datetime | None:
        """Most recent liveness signal of a session, None if it has none."""
        stamps = [
            ensure_aware(stamp)
            for stamp in (
                session.cart.updated_at,
                session.selection.touched_at,
                session.last_otp_sent,
            )
            if stamp is not None
        ]
        return max(stamps) if stamps else None

    def expiry_reason(self, session: Session, now: datetime | None = None) -> str | None:
        """Why a session should be hard-deleted ('expired' or 'inactive'), or None."""
        now = now or utc_now()

        if session.created_at is not None:
            age = now - ensure_aware(session.created_at)
            if age > timedelta(seconds=self._config.max_session_age_seconds):
                return "expired"

        activity = self.last_activity(session)
        if activity is None:
            return "inactive"
        if now - activity > timedelta(seconds=self._config.max_inactive_age_seconds):
            return "inactive"
        return None

    async def sweep(
        self,
        store: "SessionService",
        now: datetime | None = None,
        dry_run: bool = False,
    ) -> SweepResult:
        """Delete stale sessions and compact oversized ones.

        Args:
            store: Session service whose records are swept
            now: Reference time (defaults to the current time)
            dry_run: Report what would change without persisting

        Returns:
            SweepResult with counts and bytes saved
        """
        now = now or utc_now()
        result = SweepResult(dry_run=dry_run)

        sessions = await store.list_all()
        result.scanned = len(sessions)

        for key, session in sessions:
            reason = self.expiry_reason(session, now)
            if reason is not None:
                if not dry_run:
                    reason = await self._delete_stale(store, key, now)
                    if reason is None:
                        # Touched since the snapshot was taken
                        continue
                    SESSIONS_REMOVED.labels(reason=reason).inc()
                result.removed += 1
                if reason == "expired":
                    result.removed_expired += 1
                else:
                    result.removed_inactive += 1
                continue

            if not self.check_size(session).is_oversized:
                continue

            optimized, report = self.optimize(session, now)
            if report.compression_ratio <= self._config.sweep_min_improvement:
                continue

            if not dry_run:
                await self._persist_optimized(store, key, now)
                SESSIONS_COMPACTED.labels(path="sweep").inc()
                COMPACTION_BYTES_SAVED.inc(report.bytes_saved)
            result.optimized_count += 1
            result.bytes_saved += report.bytes_saved

        if not dry_run:
            ACTIVE_SESSIONS.set(result.scanned - result.removed)

        logger.info(
            "sweep_completed",
            scanned=result.scanned,
            removed=result.removed,
            removed_inactive=result.removed_inactive,
            removed_expired=result.removed_expired,
            optimized_count=result.optimized_count,
            bytes_saved=result.bytes_saved,
            dry_run=dry_run,
        )
        return result

    async def memory_stats(
        self, store: "SessionService", now: datetime | None = None
    ) -> MemoryStats:
        """Size and age figures over all stored sessions."""
        now = now or utc_now()
        stats = MemoryStats()
        oldest: datetime | None = None

        for _, session in await store.list_all():
            size = self.measure(session)
            stats.total_sessions += 1
            stats.total_bytes += size
            stats.largest_bytes = max(stats.largest_bytes, size)
            if size > self._config.size_threshold_bytes:
                stats.oversized_count += 1
            activity = self.last_activity(session)
            if activity is not None and (oldest is None or activity < oldest):
                oldest = activity

        if stats.total_sessions:
            stats.average_bytes = stats.total_bytes // stats.total_sessions
        if oldest is not None:
            stats.oldest_age_seconds = (now - oldest).total_seconds()
        return stats

    async def _delete_stale(
        self, store: "SessionService", key: SessionKey, now: datetime
    ) -> str | None:
        # Decide again on the locked, current version so a concurrent event is not lost
        reasons: list[str] = []

        def still_stale(current: Session) -> bool:
            reason = self.expiry_reason(current, now)
            if reason is not None:
                reasons.append(reason)
            return reason is not None

        removed = await store.delete_if(key.user_id, key.chat_id, still_stale)
        return reasons[-1] if removed else None

    async def _persist_optimized(
        self, store: "SessionService", key: SessionKey, now: datetime
    ) -> None:
        # Re-optimize the locked, current version so a concurrent event is not lost
        async with store.transaction(key.user_id, key.chat_id) as tx:
            tx.session, _ = self.optimize(tx.session, now)

    def _trim_quantities(self, selection: TransientSelection) -> bool:
        limit = self._config.product_quantity_limit
        if len(selection.product_quantities) <= limit:
            return False
        recent = list(selection.product_quantities.items())[-limit:]
        selection.product_quantities = dict(recent)
        return True

    def _trim_history(self, session: Session) -> bool:
        if len(session.scene.history) <= self._max_history:
            return False
        session.scene.history = session.scene.history[-self._max_history :]
        return True


def demote(entity: dict[str, Any], fields: tuple[str, ...], language: str) -> dict[str, Any]:
    """Reduce a catalog entity to a small snapshot with a resolved name."""
    values = {
        "id": entity.get("id"),
        "name": resolve_name(entity, language),
        "price": entity.get("price"),
    }
    return {field: values[field] for field in fields if values[field] is not None}


def resolve_name(entity: dict[str, Any], language: str) -> str | None:
    """Display name of a catalog entity.

    Prefers ``custom_name``, then the localized ``attribute_data.name``,
    then a plain or localized ``name``.
    """
    custom = entity.get("custom_name")
    if isinstance(custom, str) and custom:
        return custom

    attributes = entity.get("attribute_data")
    if isinstance(attributes, dict):
        localized = _localized(attributes.get("name"), language)
        if localized:
            return localized

    return _localized(entity.get("name"), language)


def _localized(value: Any, language: str, depth: int = 0) -> str | None:
    if isinstance(value, str):
        return value or None
    if not isinstance(value, dict) or depth > 3:
        return None
    if language in value:
        found = _localized(value[language], language, depth + 1)
        if found:
            return found
    for nested in value.values():
        found = _localized(nested, language, depth + 1)
        if found:
            return found
    return None
