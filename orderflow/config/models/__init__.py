"""Configuration model exports.

    from orderflow.config.models import CompactionConfig, SessionStoreConfig
"""

from orderflow.config.models.compaction import CompactionConfig
from orderflow.config.models.flow import FlowConfig
from orderflow.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from orderflow.config.models.storage import SessionStoreConfig

__all__ = [
    "CompactionConfig",
    "FlowConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "SessionStoreConfig",
]
