#=============================================================================
# File        : memtrend/config.py
# Project     : memtrend v1.0
# Component   : Configuration - Monitor Configuration Dataclass
# Description : Immutable monitor configuration with validation and
#               environment overrides for ops.
#               • Validation of interval, buffer capacity and threshold
#               • Environment variable overrides
#               • Immutable runtime config (copy-on-merge)
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, Dataclasses
# Standards   : PEP 8, Type Hints, Immutable Configuration
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: dataclasses, typing, os
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .trend import TrendResult

LeakCallback = Callable[["TrendResult"], None]

def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None: return default
    return v.strip().lower() in {"1", "true", "yes", "on"}

def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None: return default
    try:
        return float(v)
    except ValueError:
        return default

def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None: return default
    try:
        return int(v)
    except ValueError:
        return default

@dataclass(frozen=True)
class MonitorConfig:
    """
    Memory trend monitor configuration.

    Defaults:
      - one sample per second
      - ten retained snapshots
      - 10% heap growth gate (threshold multiplier 1.1)
    """
    interval_s: float = 1.0
    max_snapshots: int = 10
    threshold: float = 1.1
    on_leak: Optional[LeakCallback] = None

    # Number of samples at which a trend is reported with high confidence
    min_confidence_samples: int = 5
    # Measure heap_used with tracemalloc instead of process RSS
    trace_heap: bool = False
    # How long the stop handle waits for the sampling thread
    join_timeout_s: float = 2.0

    def __post_init__(self):
        if not (math.isfinite(self.interval_s) and self.interval_s > 0):
            raise ValueError(f"interval_s must be a positive finite number, got {self.interval_s}")
        if self.max_snapshots < 1:
            raise ValueError(f"max_snapshots must be at least 1, got {self.max_snapshots}")
        if not (math.isfinite(self.threshold) and self.threshold > 0):
            raise ValueError(f"threshold must be a positive finite number, got {self.threshold}")
        if self.min_confidence_samples < 2:
            raise ValueError(
                f"min_confidence_samples must be at least 2, got {self.min_confidence_samples}"
            )
        if self.on_leak is not None and not callable(self.on_leak):
            raise ValueError("on_leak must be callable")

        # Normalize numeric types (ints from env/CLI become floats)
        object.__setattr__(self, "interval_s", float(self.interval_s))
        object.__setattr__(self, "threshold", float(self.threshold))
        object.__setattr__(self, "join_timeout_s", max(0.0, float(self.join_timeout_s)))

    # --------- Factory helpers ---------

    @staticmethod
    def from_env(base: Optional["MonitorConfig"] = None) -> "MonitorConfig":
        """
        Build config from environment variables, overlaying a base config.
        Supported envs:
          MEMTREND_INTERVAL_S
          MEMTREND_MAX_SNAPSHOTS
          MEMTREND_THRESHOLD
          MEMTREND_MIN_CONFIDENCE_SAMPLES
          MEMTREND_TRACE_HEAP (0|1)
        """
        base = base or MonitorConfig()
        return replace(
            base,
            interval_s=_env_float("MEMTREND_INTERVAL_S", base.interval_s),
            max_snapshots=_env_int("MEMTREND_MAX_SNAPSHOTS", base.max_snapshots),
            threshold=_env_float("MEMTREND_THRESHOLD", base.threshold),
            min_confidence_samples=_env_int(
                "MEMTREND_MIN_CONFIDENCE_SAMPLES", base.min_confidence_samples
            ),
            trace_heap=_env_bool("MEMTREND_TRACE_HEAP", base.trace_heap),
        )

    def merge(self, **overrides) -> "MonitorConfig":
        """Return a copy with provided fields overridden (immutably)."""
        return replace(self, **overrides)

    def __repr__(self) -> str:
        callback = getattr(self.on_leak, "__name__", None) if self.on_leak else None
        return (f"MonitorConfig(interval_s={self.interval_s}, "
                f"max_snapshots={self.max_snapshots}, threshold={self.threshold}, "
                f"on_leak={callback}, "
                f"min_confidence_samples={self.min_confidence_samples}, "
                f"trace_heap={self.trace_heap})")
