#=============================================================================
# File        : memtrend/trend.py
# Project     : memtrend v1.0
# Component   : Trend Analysis - Heap Growth Verdicts
# Description : Two-point growth estimate over a chronological snapshot window
#               • Growth percentage rounded half away from zero
#               • Threshold multiplier verdict
#               • Advisory confidence label based on window size
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, Dataclasses, Decimal
# Standards   : PEP 8, Type Hints, Pure Functions
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: dataclasses, decimal, enum, sampling
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, Sequence

from .sampling import Snapshot

DEFAULT_THRESHOLD = 1.1
DEFAULT_MIN_CONFIDENCE_SAMPLES = 5


class Confidence(Enum):
    """How much history backs a trend verdict."""
    INSUFFICIENT_DATA = "insufficient_data"
    LOW = "low"
    HIGH = "high"


@dataclass(frozen=True)
class TrendResult:
    """
    Growth verdict derived from the oldest and newest snapshots in a window.

    ``confidence`` is advisory: ``is_growing`` is decided as soon as two
    samples exist.
    """
    is_growing: bool
    growth_rate_percent: float
    confidence: Confidence
    sample_count: int = 0
    first_snapshot: Optional[Snapshot] = None
    last_snapshot: Optional[Snapshot] = None


def _round_half_away(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def calculate_growth_rate(first: Snapshot, last: Snapshot) -> float:
    """Heap growth from ``first`` to ``last`` in percent, 2 decimals."""
    if first.heap_used <= 0:
        return 0.0
    growth = (last.heap_used - first.heap_used) / first.heap_used * 100
    return _round_half_away(growth)


def analyze_trend(snapshots: Sequence[Snapshot],
                  threshold: float = DEFAULT_THRESHOLD,
                  min_confidence_samples: int = DEFAULT_MIN_CONFIDENCE_SAMPLES) -> TrendResult:
    """
    Analyze heap growth across a chronological (oldest first) window.

    Only the first and last snapshots are compared. The sequence is not
    sorted. Growth is flagged when ``last.heap_used`` exceeds
    ``first.heap_used * threshold``; a non-positive first heap is never
    growing.

    Args:
        snapshots: Snapshots ordered oldest first
        threshold: Growth multiplier, e.g. 1.1 for a 10% gate
        min_confidence_samples: Window size reported as high confidence

    Returns:
        TrendResult for the window
    """
    count = len(snapshots)
    if count < 2:
        return TrendResult(
            is_growing=False,
            growth_rate_percent=0.0,
            confidence=Confidence.INSUFFICIENT_DATA,
            sample_count=count,
        )

    first = snapshots[0]
    last = snapshots[-1]
    is_growing = first.heap_used > 0 and last.heap_used > first.heap_used * threshold

    return TrendResult(
        is_growing=is_growing,
        growth_rate_percent=calculate_growth_rate(first, last),
        confidence=Confidence.HIGH if count >= min_confidence_samples else Confidence.LOW,
        sample_count=count,
        first_snapshot=first,
        last_snapshot=last,
    )
