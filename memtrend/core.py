#=============================================================================
# File        : memtrend/core.py
# Project     : memtrend v1.0
# Component   : Core Monitor - Bounded-History Memory Trend Monitor
# Description : Periodic memory sampling with rolling-window trend detection
#               • Background sampling thread per monitor
#               • Bounded FIFO snapshot history
#               • Growth notifications through an on_leak callback
#               • Idempotent stop handles releasing the sampling thread
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, Threading
# Standards   : PEP 8, Type Hints, Explicit Resource Lifecycle
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: config, sampling, trend
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import time
import threading
import logging
from collections import deque
from enum import Enum
from typing import Callable, Deque, List, Optional

from .config import MonitorConfig
from .sampling import (
    MemoryProvider, Snapshot, TracemallocProvider, capture_snapshot, format_snapshot
)
from .trend import TrendResult, analyze_trend

# Configure safe logging defaults
_logger = logging.getLogger(__name__)
_package_logger = logging.getLogger("memtrend")
_package_logger.setLevel(logging.WARNING)  # Only WARN/ERROR by default

# Add console handler only if none exists
if not _package_logger.handlers and not logging.getLogger().handlers:
    _console_handler = logging.StreamHandler()
    _formatter = logging.Formatter('[memtrend] %(levelname)s: %(message)s')
    _console_handler.setFormatter(_formatter)
    _package_logger.addHandler(_console_handler)


class MonitorState(Enum):
    """Lifecycle states of a Monitor."""
    IDLE = "idle"
    RUNNING = "running"


class StopHandle:
    """
    Single-use cancellation handle for a background sampling thread.

    Calling the handle (or ``stop()``) is idempotent: the first call stops
    scheduling, waits for a tick in flight, and releases the thread; later
    calls do nothing. Usable as a context manager.
    """

    def __init__(self, name: str, join_timeout_s: float = 2.0,
                 on_stop: Optional[Callable[["StopHandle"], None]] = None) -> None:
        self.name = name
        self._join_timeout_s = join_timeout_s
        self._on_stop = on_stop
        self._stop_event = threading.Event()
        self._done_event = threading.Event()
        self._lock = threading.Lock()
        self._stopped = False
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

    def _start(self, tick: Callable[[], object], interval_s: float) -> None:
        """Run ``tick`` every ``interval_s`` seconds on a daemon thread."""

        def loop():
            _logger.debug(f"{self.name} started")
            try:
                while not self._stop_event.wait(interval_s):
                    tick()
            except Exception as e:
                # Terminal: record for join() and let the thread's excepthook see it
                self._error = e
                _logger.error(f"{self.name} stopped sampling after failure: {e}")
                raise
            finally:
                self._done_event.set()
                _logger.debug(f"{self.name} exited")

        self._thread = threading.Thread(target=loop, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True

        self._stop_event.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=self._join_timeout_s)
            if thread.is_alive():
                _logger.warning(f"{self.name} did not exit within {self._join_timeout_s:.1f}s")

        if self._on_stop is not None:
            self._on_stop(self)

    __call__ = stop

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def error(self) -> Optional[BaseException]:
        """The failure that ended sampling, if any."""
        return self._error

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the sampling thread to exit.

        Returns True once the thread has exited. Re-raises the failure that
        ended sampling, if there was one.
        """
        if self._thread is None:
            return True
        finished = self._done_event.wait(timeout)
        if self._error is not None:
            raise self._error
        return finished

    def __enter__(self) -> "StopHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"StopHandle(name={self.name!r}, stopped={self._stopped}, error={self._error!r})"


class Monitor:
    """
    Bounded-history memory trend monitor.

    Each tick captures a snapshot, appends it to a FIFO history of at most
    ``max_snapshots`` entries, analyzes the window once it holds two or more
    snapshots, and calls ``on_leak`` synchronously when heap growth crosses
    the threshold.

    The monitor stays RUNNING until its stop handle is called, including
    after a sampling failure. A handle that is never called keeps the
    sampling thread alive for the life of the process.

    With ``trace_heap`` set and no explicit provider, heap figures come from
    tracemalloc, which must already be tracing (``tracemalloc.start()``);
    otherwise the first tick raises EnvironmentUnsupported.
    """

    def __init__(self, config: Optional[MonitorConfig] = None,
                 provider: Optional[MemoryProvider] = None) -> None:
        self.config = config or MonitorConfig()
        if provider is None and self.config.trace_heap:
            provider = TracemallocProvider()
        self._provider = provider

        self._snapshots: Deque[Snapshot] = deque(maxlen=self.config.max_snapshots)
        self._last_trend: Optional[TrendResult] = None
        self._handle: Optional[StopHandle] = None
        self._lock = threading.Lock()         # history and lifecycle state
        self._tick_lock = threading.RLock()   # one tick at a time

    @property
    def state(self) -> MonitorState:
        return MonitorState.RUNNING if self._handle is not None else MonitorState.IDLE

    def is_running(self) -> bool:
        return self._handle is not None

    @property
    def last_trend(self) -> Optional[TrendResult]:
        """Trend computed on the most recent tick with two or more snapshots."""
        return self._last_trend

    def start(self) -> StopHandle:
        """
        Begin periodic sampling every ``config.interval_s`` seconds.

        Calling start() on a running monitor is a no-op that returns the
        existing stop handle.
        """
        with self._lock:
            if self._handle is not None:
                _logger.warning("Monitor already running; returning existing stop handle")
                return self._handle

            handle = StopHandle(
                name="memtrend-monitor",
                join_timeout_s=self.config.join_timeout_s,
                on_stop=self._release,
            )
            self._handle = handle
            handle._start(self.sample, self.config.interval_s)

        _logger.info(f"Memory monitor started: {self.config!r}")
        return handle

    def _release(self, handle: StopHandle) -> None:
        with self._lock:
            if self._handle is handle:
                self._handle = None
                _logger.info("Memory monitor stopped")

    def sample(self) -> Optional[TrendResult]:
        """
        Perform one tick synchronously.

        Returns the trend for the current window, or None while fewer than
        two snapshots are held. Errors from the memory provider and from
        ``on_leak`` propagate to the caller.
        """
        with self._tick_lock:
            snapshot = capture_snapshot(self._provider)

            with self._lock:
                self._snapshots.append(snapshot)
                window = tuple(self._snapshots)

            if len(window) < 2:
                _logger.debug(f"Collected snapshot 1/{self.config.max_snapshots}")
                return None

            trend = analyze_trend(
                window,
                threshold=self.config.threshold,
                min_confidence_samples=self.config.min_confidence_samples,
            )
            self._last_trend = trend
            _logger.debug(f"Heap trend over {trend.sample_count} snapshots: "
                          f"{trend.growth_rate_percent:+.2f}% ({trend.confidence.value})")

            if trend.is_growing:
                _logger.warning(f"Heap growth {trend.growth_rate_percent:.2f}% across "
                                f"{trend.sample_count} snapshots exceeds threshold "
                                f"x{self.config.threshold}")
                if self.config.on_leak is not None:
                    self.config.on_leak(trend)

            return trend

    def get_snapshots(self) -> List[Snapshot]:
        """Copy of the current history, oldest first."""
        with self._lock:
            return list(self._snapshots)


def create_monitor(config: Optional[MonitorConfig] = None,
                   provider: Optional[MemoryProvider] = None,
                   **overrides) -> Monitor:
    """
    Create a memory trend monitor.

    Args:
        config: Base configuration (defaults to MonitorConfig())
        provider: Memory provider (defaults to the process psutil provider)
        **overrides: MonitorConfig fields to override, e.g. interval_s=0.5

    Example:
        stop = create_monitor(threshold=1.2, on_leak=print).start()
        ...
        stop()
    """
    config = config or MonitorConfig()
    if overrides:
        config = config.merge(**overrides)
    return Monitor(config, provider=provider)


class MemoryLogger:
    """Logs a formatted snapshot immediately on start and then every interval."""

    def __init__(self, interval_s: float = 5.0, label: str = "Memory",
                 provider: Optional[MemoryProvider] = None,
                 logger: Optional[logging.Logger] = None) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self.interval_s = float(interval_s)
        self.label = label
        self._provider = provider
        self._log = logger or _logger

    def log_snapshot(self) -> Snapshot:
        snapshot = capture_snapshot(self._provider)
        formatted = format_snapshot(snapshot)
        self._log.info(f"{self.label}: RSS {formatted['rss']} | "
                       f"Heap Used {formatted['heap_used']} | "
                       f"Heap Total {formatted['heap_total']} | "
                       f"External {formatted['external']}")
        return snapshot

    def start(self) -> StopHandle:
        self.log_snapshot()
        handle = StopHandle(name="memtrend-logger")
        handle._start(self.log_snapshot, self.interval_s)
        return handle


def monitor_for_duration(duration_s: float, interval_s: float = 1.0,
                         provider: Optional[MemoryProvider] = None) -> List[Snapshot]:
    """
    Sample memory every ``interval_s`` seconds for ``duration_s`` seconds.

    Blocks the calling thread. A failed snapshot ends collection and
    propagates.
    """
    if duration_s < 0:
        raise ValueError(f"duration_s cannot be negative, got {duration_s}")
    if interval_s <= 0:
        raise ValueError(f"interval_s must be positive, got {interval_s}")

    snapshots: List[Snapshot] = []
    deadline = time.monotonic() + duration_s
    next_tick = time.monotonic() + interval_s

    while next_tick <= deadline:
        time.sleep(max(0.0, next_tick - time.monotonic()))
        snapshots.append(capture_snapshot(provider))
        next_tick += interval_s

    time.sleep(max(0.0, deadline - time.monotonic()))
    return snapshots


__all__ = [
    'Monitor',
    'MonitorState',
    'StopHandle',
    'create_monitor',
    'MemoryLogger',
    'monitor_for_duration',
]
