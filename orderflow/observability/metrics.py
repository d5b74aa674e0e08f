"""Prometheus metrics for Orderflow.

Tracks session store traffic, lock contention, compaction and the
conversation state machine.
"""

from prometheus_client import Counter, Gauge, Histogram

# Session store metrics
SESSION_OPERATIONS = Counter(
    "orderflow_session_operations_total",
    "Session store operations",
    labelnames=["operation", "outcome"],
)

SESSION_CACHE = Counter(
    "orderflow_session_cache_total",
    "Session cache lookups",
    labelnames=["result"],
)

SESSION_VALIDATION_FAILURES = Counter(
    "orderflow_session_validation_failures_total",
    "Stored sessions replaced with defaults after failing validation",
)

SESSION_LOCK_TIMEOUTS = Counter(
    "orderflow_session_lock_timeouts_total",
    "Per-session lock waits that hit the timeout",
    labelnames=["policy"],
)

SESSION_LOCK_WAIT = Histogram(
    "orderflow_session_lock_wait_seconds",
    "Time spent waiting for a per-session lock",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

SESSION_SIZE_BYTES = Histogram(
    "orderflow_session_size_bytes",
    "Serialized session size on save",
    buckets=(512, 1024, 4096, 16384, 65536, 102400, 262144, 1048576),
)

# Compaction metrics
SESSIONS_COMPACTED = Counter(
    "orderflow_sessions_compacted_total",
    "Sessions rewritten by the optimizer",
    labelnames=["path"],
)

SESSIONS_REMOVED = Counter(
    "orderflow_sessions_removed_total",
    "Sessions hard-deleted by sweeps",
    labelnames=["reason"],
)

COMPACTION_BYTES_SAVED = Counter(
    "orderflow_compaction_bytes_saved_total",
    "Bytes saved by session compaction",
)

ACTIVE_SESSIONS = Gauge(
    "orderflow_active_sessions",
    "Number of stored sessions at the last sweep",
)

# State machine metrics
EVENTS_HANDLED = Counter(
    "orderflow_events_handled_total",
    "Conversation events handled",
    labelnames=["scene", "outcome"],
)

GUARD_REDIRECTS = Counter(
    "orderflow_guard_redirects_total",
    "Scene entries redirected by a failing guard",
    labelnames=["guard"],
)
