#=============================================================================
# File        : tests/test_sampling.py
# Project     : memtrend v1.0
# Component   : Sampling Test Suite
# Description : Snapshot capture, providers, formatting and comparison
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Created     : 2025-09-02
#=============================================================================

import dataclasses
import tracemalloc

import psutil
import pytest

from memtrend import sampling
from memtrend.sampling import (
    EnvironmentUnsupported, MemoryProvider, PsutilProvider, Snapshot, TracemallocProvider,
    capture_snapshot, compare_snapshots, format_mb, format_snapshot
)

from conftest import ScriptedProvider, make_snapshots


class TestCaptureSnapshot:

    def test_copies_provider_counters(self):
        snapshot = capture_snapshot(ScriptedProvider([1234]))

        assert snapshot.heap_used == 1234
        assert snapshot.heap_total == 2468
        assert snapshot.resident_set_size == 2468
        assert snapshot.external == 0
        assert snapshot.array_buffers is None

    def test_timestamps_do_not_go_backwards(self):
        provider = ScriptedProvider([1, 2, 3])
        snapshots = [capture_snapshot(provider) for _ in range(3)]

        stamps = [s.timestamp for s in snapshots]
        assert stamps == sorted(stamps)
        assert all(s.wall_time > 0 for s in snapshots)

    def test_real_process_measurement(self):
        snapshot = capture_snapshot()

        assert snapshot.resident_set_size > 0
        assert snapshot.heap_total > 0
        assert snapshot.heap_used > 0
        assert snapshot.external >= 0

    def test_snapshot_is_immutable(self):
        snapshot = capture_snapshot(ScriptedProvider([10]))
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.heap_used = 0

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError):
            Snapshot(timestamp=0.0, resident_set_size=1, heap_total=1, heap_used=-1, external=0)

    def test_provider_failure_propagates(self):
        with pytest.raises(EnvironmentUnsupported):
            capture_snapshot(ScriptedProvider([10], fail_at=0))


class TestProviders:

    def test_psutil_provider_satisfies_protocol(self):
        assert isinstance(PsutilProvider(), MemoryProvider)

    def test_unreadable_counters_raise_environment_unsupported(self, monkeypatch):
        class DeniedProcess:
            def memory_info(self):
                raise psutil.AccessDenied()

        provider = PsutilProvider()
        monkeypatch.setattr(provider, "_process", DeniedProcess())
        with pytest.raises(EnvironmentUnsupported):
            provider.read()

    def test_missing_process_raises_environment_unsupported(self, monkeypatch):
        def gone(pid):
            raise psutil.NoSuchProcess(pid)

        monkeypatch.setattr(sampling.psutil, "Process", gone)
        with pytest.raises(EnvironmentUnsupported):
            PsutilProvider(pid=424242)

    def test_tracemalloc_provider_requires_tracing(self, monkeypatch):
        monkeypatch.setattr(sampling.tracemalloc, "is_tracing", lambda: False)
        with pytest.raises(EnvironmentUnsupported):
            TracemallocProvider().read()

    def test_tracemalloc_provider_reports_traced_heap(self):
        was_tracing = tracemalloc.is_tracing()
        if not was_tracing:
            tracemalloc.start()
        try:
            payload = [bytes(1024) for _ in range(256)]
            usage = TracemallocProvider().read()
        finally:
            if not was_tracing:
                tracemalloc.stop()

        assert usage.heap_used >= 256 * 1024
        assert usage.heap_total >= usage.heap_used
        assert usage.resident_set_size > 0
        del payload


class TestFormatting:

    @pytest.mark.parametrize("num_bytes, expected", [
        (0, "0 MB"),
        (5 * 1024 * 1024, "5 MB"),
        (int(2.6 * 1024 * 1024), "3 MB"),
        (int(2.5 * 1024 * 1024), "3 MB"),
        (int(3.5 * 1024 * 1024), "4 MB"),
    ])
    def test_format_mb(self, num_bytes, expected):
        assert format_mb(num_bytes) == expected

    def test_format_snapshot_fields(self):
        snapshot = Snapshot(timestamp=0.0, resident_set_size=64 * 1024 * 1024,
                            heap_total=32 * 1024 * 1024, heap_used=16 * 1024 * 1024,
                            external=0, wall_time=0.0)
        formatted = format_snapshot(snapshot)

        assert formatted == {
            "timestamp": "1970-01-01T00:00:00+00:00",
            "rss": "64 MB",
            "heap_total": "32 MB",
            "heap_used": "16 MB",
            "external": "0 MB",
        }

    def test_format_snapshot_includes_array_buffers_when_known(self):
        snapshot = dataclasses.replace(make_snapshots(100)[0], array_buffers=2 * 1024 * 1024)
        assert format_snapshot(snapshot)["array_buffers"] == "2 MB"


class TestCompareSnapshots:

    def test_growth_between_snapshots(self):
        before, after = make_snapshots(1000, 1500)
        comparison = compare_snapshots(before, after)

        assert comparison.heap_diff == 500
        assert comparison.rss_diff == 1000
        assert comparison.time_diff == 1.0
        assert comparison.heap_growth_rate == pytest.approx(50.0)
        assert comparison.rss_growth_rate == pytest.approx(50.0)
        assert comparison.heap_growth_per_second == pytest.approx(500.0)

    def test_zero_denominators_give_zero_rates(self):
        before = Snapshot(timestamp=5.0, resident_set_size=0, heap_total=0, heap_used=0, external=0)
        after = Snapshot(timestamp=5.0, resident_set_size=10, heap_total=10, heap_used=10, external=0)
        comparison = compare_snapshots(before, after)

        assert comparison.heap_growth_rate == 0.0
        assert comparison.rss_growth_rate == 0.0
        assert comparison.heap_growth_per_second == 0.0
