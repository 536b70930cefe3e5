#=============================================================================
# File        : memtrend/__init__.py
# Project     : memtrend v1.0
# Component   : Package Initialization
# Description : Bounded-history memory trend monitoring
#               • Immutable process memory snapshots (psutil / tracemalloc)
#               • Rolling-window heap growth detection
#               • Background monitor with idempotent stop handles
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, Threading, psutil
# Standards   : PEP 8, Type Hints, Dataclasses
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: typing, threading, tracemalloc, psutil
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. Released under MIT License.
#=============================================================================

"""
memtrend - Bounded-History Memory Trend Monitor

Samples process memory on a background thread, keeps the last N snapshots,
and calls back when heap usage grows past a threshold across that window.

Quick Start:
    import memtrend

    def on_leak(trend):
        print(f"Heap grew {trend.growth_rate_percent:.2f}%")

    stop = memtrend.create_monitor(interval_s=1.0, max_snapshots=10,
                                   threshold=1.1, on_leak=on_leak).start()

    # Your application code here

    stop()  # always release the sampling thread
"""

from .config import MonitorConfig

from .sampling import (
    EnvironmentUnsupported,
    MemoryProvider,
    MemoryUsage,
    PsutilProvider,
    TracemallocProvider,
    Snapshot,
    SnapshotComparison,
    capture_snapshot,
    compare_snapshots,
    format_mb,
    format_snapshot
)

from .trend import (
    Confidence,
    TrendResult,
    analyze_trend,
    calculate_growth_rate
)

from .core import (
    Monitor,
    MonitorState,
    StopHandle,
    create_monitor,
    MemoryLogger,
    monitor_for_duration
)

__version__ = "1.0.0"
__author__ = "Kyle Clouthier"
__license__ = "MIT"

__all__ = [
    # Monitor
    "Monitor",
    "MonitorState",
    "StopHandle",
    "create_monitor",
    "MemoryLogger",
    "monitor_for_duration",

    # Configuration
    "MonitorConfig",

    # Snapshots
    "EnvironmentUnsupported",
    "MemoryProvider",
    "MemoryUsage",
    "PsutilProvider",
    "TracemallocProvider",
    "Snapshot",
    "SnapshotComparison",
    "capture_snapshot",
    "compare_snapshots",
    "format_mb",
    "format_snapshot",

    # Trend analysis
    "Confidence",
    "TrendResult",
    "analyze_trend",
    "calculate_growth_rate",

    # Metadata
    "__version__",
    "__author__",
    "__license__"
]
