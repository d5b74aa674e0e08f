"""Session compaction: size checks, optimization and periodic sweeps."""

from orderflow.compaction.models import (
    MemoryStats,
    OptimizationReport,
    SizeReason,
    SizeReport,
    SweepResult,
)
from orderflow.compaction.optimizer import SessionOptimizer
from orderflow.compaction.scheduler import CompactionScheduler

__all__ = [
    "CompactionScheduler",
    "MemoryStats",
    "OptimizationReport",
    "SessionOptimizer",
    "SizeReason",
    "SizeReport",
    "SweepResult",
]
