#=============================================================================
# File        : memtrend/sampling.py
# Project     : memtrend v1.0
# Component   : Sampling - Point-in-time Process Memory Snapshots
# Description : Immutable memory snapshots read from the host process
#               • psutil-backed process counters (RSS, VMS, shared)
#               • Optional tracemalloc view of the Python heap
#               • Snapshot formatting and pairwise comparison helpers
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, psutil, tracemalloc
# Standards   : PEP 8, Type Hints, Cross-platform Compatibility
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: os, time, tracemalloc, psutil
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import os
import time
import tracemalloc
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, NamedTuple, Optional, Protocol, runtime_checkable

import psutil


class EnvironmentUnsupported(RuntimeError):
    """The host cannot report process memory usage."""


class MemoryUsage(NamedTuple):
    """Raw counters reported by a memory provider, in bytes."""
    resident_set_size: int
    heap_total: int
    heap_used: int
    external: int
    array_buffers: Optional[int] = None


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable point-in-time memory measurement.

    ``timestamp`` comes from the monotonic clock and orders snapshots;
    ``wall_time`` is kept for display only. Byte counts are copied verbatim
    from the provider that produced them.
    """
    timestamp: float
    resident_set_size: int
    heap_total: int
    heap_used: int
    external: int
    array_buffers: Optional[int] = None
    wall_time: float = 0.0

    def __post_init__(self):
        for name in ("resident_set_size", "heap_total", "heap_used", "external"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative, got {getattr(self, name)}")
        if self.array_buffers is not None and self.array_buffers < 0:
            raise ValueError(f"array_buffers cannot be negative, got {self.array_buffers}")


@runtime_checkable
class MemoryProvider(Protocol):
    """Protocol for memory measurement providers."""

    def read(self) -> MemoryUsage:
        """Read the current process memory counters."""
        ...


class PsutilProvider:
    """Memory provider using psutil process counters."""

    def __init__(self, pid: Optional[int] = None) -> None:
        try:
            self._process = psutil.Process(pid if pid is not None else os.getpid())
        except psutil.Error as e:
            raise EnvironmentUnsupported(f"Cannot attach to process: {e}") from e

    def _memory_info(self):
        try:
            return self._process.memory_info()
        except (psutil.Error, OSError) as e:
            raise EnvironmentUnsupported(f"Process memory counters unavailable: {e}") from e

    def read(self) -> MemoryUsage:
        info = self._memory_info()
        # 'shared' only exists on Linux
        return MemoryUsage(
            resident_set_size=info.rss,
            heap_total=info.vms,
            heap_used=info.rss,
            external=getattr(info, "shared", 0),
        )


class TracemallocProvider(PsutilProvider):
    """
    Reports the Python allocator's traced memory as the heap.

    ``heap_used`` is the currently traced size and ``heap_total`` the traced
    peak. Tracing must already be active (``tracemalloc.start()``).
    """

    def read(self) -> MemoryUsage:
        if not tracemalloc.is_tracing():
            raise EnvironmentUnsupported("tracemalloc is not tracing; call tracemalloc.start()")
        current, peak = tracemalloc.get_traced_memory()
        info = self._memory_info()
        return MemoryUsage(
            resident_set_size=info.rss,
            heap_total=peak,
            heap_used=current,
            external=getattr(info, "shared", 0),
        )


_default_provider: Optional[MemoryProvider] = None


def get_default_provider() -> MemoryProvider:
    """Get the default process-wide psutil provider."""
    global _default_provider
    if _default_provider is None:
        _default_provider = PsutilProvider()
    return _default_provider


def capture_snapshot(provider: Optional[MemoryProvider] = None) -> Snapshot:
    """
    Take an immutable snapshot of current process memory.

    Raises:
        EnvironmentUnsupported: the provider cannot read memory counters
    """
    usage = (provider or get_default_provider()).read()
    return Snapshot(
        timestamp=time.monotonic(),
        resident_set_size=usage.resident_set_size,
        heap_total=usage.heap_total,
        heap_used=usage.heap_used,
        external=usage.external,
        array_buffers=usage.array_buffers,
        wall_time=time.time(),
    )


# --------- Formatting & comparison ---------

def format_mb(num_bytes: float) -> str:
    """Format a byte count as whole megabytes, halves rounded up."""
    megabytes = Decimal(repr(num_bytes / 1024 / 1024)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return f"{megabytes} MB"


def format_snapshot(snapshot: Snapshot) -> Dict[str, str]:
    """Display strings for every field of a snapshot."""
    formatted = {
        "timestamp": datetime.fromtimestamp(snapshot.wall_time, tz=timezone.utc).isoformat(),
        "rss": format_mb(snapshot.resident_set_size),
        "heap_total": format_mb(snapshot.heap_total),
        "heap_used": format_mb(snapshot.heap_used),
        "external": format_mb(snapshot.external),
    }
    if snapshot.array_buffers is not None:
        formatted["array_buffers"] = format_mb(snapshot.array_buffers)
    return formatted


@dataclass(frozen=True)
class SnapshotComparison:
    """Differences between two snapshots; rates are 0.0 when undefined."""
    heap_diff: int
    rss_diff: int
    time_diff: float
    heap_growth_rate: float
    rss_growth_rate: float
    heap_growth_per_second: float


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def compare_snapshots(before: Snapshot, after: Snapshot) -> SnapshotComparison:
    """Compare two snapshots taken in chronological order."""
    heap_diff = after.heap_used - before.heap_used
    rss_diff = after.resident_set_size - before.resident_set_size
    time_diff = after.timestamp - before.timestamp

    return SnapshotComparison(
        heap_diff=heap_diff,
        rss_diff=rss_diff,
        time_diff=time_diff,
        heap_growth_rate=_ratio(heap_diff, before.heap_used) * 100,
        rss_growth_rate=_ratio(rss_diff, before.resident_set_size) * 100,
        heap_growth_per_second=_ratio(heap_diff, time_diff),
    )
