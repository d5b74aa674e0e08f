"""Session compaction configuration models."""

from pydantic import BaseModel, Field


class CompactionConfig(BaseModel):
    """Thresholds for reactive and periodic session compaction."""

    size_threshold_bytes: int = Field(
        default=100 * 1024,
        gt=0,
        description="Serialized size above which a session is oversized",
    )
    max_inactive_age_seconds: int = Field(
        default=86400,  # 24 hours
        gt=0,
        description="Sessions inactive longer than this are removed by sweeps",
    )
    max_session_age_seconds: int = Field(
        default=604800,  # 7 days
        gt=0,
        description="Absolute age after which sessions are removed by sweeps",
    )
    sweep_min_improvement: float = Field(
        default=0.10,
        ge=0.0,
        le=1.0,
        description="Minimum compression ratio for a sweep to rewrite a session",
    )
    reactive_min_improvement: float = Field(
        default=0.20,
        ge=0.0,
        le=1.0,
        description="Minimum compression ratio for the save path to keep an optimization",
    )
    product_quantity_limit: int = Field(
        default=20,
        gt=0,
        description="Most-recent product quantity entries kept per session",
    )
    product_quantity_warn: int = Field(
        default=30,
        gt=0,
        description="Quantity map size reported as a size reason",
    )
    cart_items_warn: int = Field(
        default=20,
        gt=0,
        description="Cart line count reported as a size reason",
    )
    selected_product_warn_bytes: int = Field(
        default=1000,
        gt=0,
        description="Selected product payload size reported as a size reason",
    )
    transient_ttl_seconds: int = Field(
        default=3600,
        gt=0,
        description="Transient selections untouched for longer are dropped",
    )
    sweep_interval_seconds: int = Field(
        default=21600,  # 6 hours
        gt=0,
        description="Interval of the periodic sweep",
    )
