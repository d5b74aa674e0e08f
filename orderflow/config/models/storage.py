"""Session storage configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

StorageBackendType = Literal["jsonfile", "inmemory"]
LockTimeoutPolicy = Literal["proceed", "fail"]
LanguageCode = Literal["en", "ru", "uz"]


class SessionStoreConfig(BaseModel):
    """Configuration for the session store and its backing medium."""

    backend: StorageBackendType = Field(
        default="jsonfile",
        description="Physical storage backend",
    )
    path: str = Field(
        default="sessions.json",
        description="Backing file for the jsonfile backend",
    )
    json_indent: int | None = Field(
        default=2,
        ge=0,
        description="Indentation of the backing file (None for compact output)",
    )
    cache_ttl_seconds: float = Field(
        default=300.0,  # 5 minutes
        ge=0,
        description="How long a cached session copy stays fresh",
    )
    lock_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Maximum wait for a per-session lock",
    )
    lock_timeout_policy: LockTimeoutPolicy = Field(
        default="proceed",
        description=(
            "What a waiter does when the lock wait elapses: 'proceed' past the "
            "stale lock (logged) or 'fail' with LockTimeoutError"
        ),
    )
    default_language: LanguageCode = Field(
        default="en",
        description="Language assigned to newly created sessions",
    )
