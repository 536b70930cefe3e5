#=============================================================================
# File        : tests/conftest.py
# Project     : memtrend v1.0
# Component   : Shared Test Fixtures
# Description : Scripted memory providers and snapshot builders
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Created     : 2025-09-02
#=============================================================================

import sys
import time
import threading
from pathlib import Path
from typing import List, Optional

import pytest

# Add memtrend to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent))

from memtrend.sampling import EnvironmentUnsupported, MemoryUsage, Snapshot


class ScriptedProvider:
    """Memory provider replaying a fixed heap_used sequence."""

    def __init__(self, heap_values: List[int], fail_at: Optional[int] = None):
        self.heap_values = list(heap_values)
        self.fail_at = fail_at
        self.reads = 0
        self._lock = threading.Lock()

    def read(self) -> MemoryUsage:
        with self._lock:
            index = self.reads
            self.reads += 1
        if self.fail_at is not None and index >= self.fail_at:
            raise EnvironmentUnsupported("scripted provider failure")
        # Hold the last value once the script runs out
        heap = self.heap_values[min(index, len(self.heap_values) - 1)]
        return MemoryUsage(
            resident_set_size=heap * 2,
            heap_total=heap * 2,
            heap_used=heap,
            external=0,
        )


def make_snapshots(*heap_values: int) -> List[Snapshot]:
    """Chronological snapshots with the given heap_used values."""
    return [
        Snapshot(
            timestamp=float(i),
            resident_set_size=heap * 2,
            heap_total=heap * 2,
            heap_used=heap,
            external=0,
            wall_time=1_700_000_000.0 + i,
        )
        for i, heap in enumerate(heap_values)
    ]


def wait_for(predicate, timeout: float = 2.0, poll: float = 0.005) -> bool:
    """Poll until predicate() is truthy or the timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(poll)
    return bool(predicate())


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep MEMTREND_* variables from the outer environment out of tests."""
    for name in ("MEMTREND_INTERVAL_S", "MEMTREND_MAX_SNAPSHOTS", "MEMTREND_THRESHOLD",
                 "MEMTREND_MIN_CONFIDENCE_SAMPLES", "MEMTREND_TRACE_HEAP"):
        monkeypatch.delenv(name, raising=False)
