"""Reports produced by the session optimizer."""

from enum import Enum

from pydantic import BaseModel, Field


class SizeReason(str, Enum):
    """Why a session is larger than it should be."""

    CATALOG_CACHE = "catalog_cache"
    LARGE_SELECTED_PRODUCT = "large_selected_product"
    MANY_PRODUCT_QUANTITIES = "many_product_quantities"
    LARGE_CART = "large_cart"


class SizeReport(BaseModel):
    """Result of measuring a session against the size threshold."""

    is_oversized: bool = Field(..., description="Size exceeds the threshold")
    size_bytes: int = Field(..., ge=0, description="Serialized UTF-8 size")
    threshold_bytes: int = Field(..., gt=0, description="Configured threshold")
    reasons: list[SizeReason] = Field(
        default_factory=list, description="Fields contributing to the size"
    )


class OptimizationReport(BaseModel):
    """What a single optimize() call removed and how much it saved."""

    original_size: int = Field(..., ge=0)
    optimized_size: int = Field(..., ge=0)
    removed_fields: list[str] = Field(default_factory=list)

    @property
    def bytes_saved(self) -> int:
        return max(self.original_size - self.optimized_size, 0)

    @property
    def compression_ratio(self) -> float:
        """Fraction of the original size that was removed (0.0 - 1.0)."""
        if self.original_size == 0:
            return 0.0
        return self.bytes_saved / self.original_size


class SweepResult(BaseModel):
    """Outcome of a full sweep over the store."""

    scanned: int = Field(default=0, ge=0, description="Sessions examined")
    removed: int = Field(default=0, ge=0, description="Sessions hard-deleted")
    removed_inactive: int = Field(default=0, ge=0, description="Deleted for inactivity")
    removed_expired: int = Field(default=0, ge=0, description="Deleted for absolute age")
    optimized_count: int = Field(default=0, ge=0, description="Sessions compacted")
    bytes_saved: int = Field(default=0, ge=0, description="Bytes saved by compaction")
    dry_run: bool = Field(default=False, description="Nothing was persisted")


class MemoryStats(BaseModel):
    """Aggregate size and age figures for the stored sessions."""

    total_sessions: int = 0
    total_bytes: int = 0
    average_bytes: int = 0
    largest_bytes: int = 0
    oldest_age_seconds: float | None = None
    oversized_count: int = 0
