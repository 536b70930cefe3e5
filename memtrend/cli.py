#!/usr/bin/env python3
"""
memtrend CLI Interface

Command-line interface for sampling process memory and watching heap trends.
"""

import argparse
import json
import logging
import sys
import tracemalloc
from dataclasses import asdict

from . import __version__
from .config import MonitorConfig
from .core import MemoryLogger, create_monitor
from .sampling import EnvironmentUnsupported, TracemallocProvider, capture_snapshot, format_snapshot


def create_parser():
    """Create the argument parser for memtrend CLI."""
    parser = argparse.ArgumentParser(
        prog='memtrend',
        description='memtrend - Bounded-history memory trend monitor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  memtrend snapshot --json
  memtrend watch --interval 0.5 --max-snapshots 20 --threshold 1.2 --duration 30
  memtrend log --interval 5 --duration 60
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument('--verbose', '-v', action='count', default=0,
                        help='Increase log verbosity (-v info, -vv debug)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Snapshot command
    snapshot_parser = subparsers.add_parser('snapshot', help='Print one memory snapshot')
    snapshot_parser.add_argument('--json', action='store_true',
                                 help='Output raw byte counts in JSON format')
    snapshot_parser.add_argument('--trace-heap', action='store_true',
                                 help='Report heap usage from tracemalloc')

    # Watch command (unset options fall back to MEMTREND_* env, then defaults)
    watch_parser = subparsers.add_parser('watch', help='Watch heap growth for a while')
    watch_parser.add_argument('--interval', '-i', type=float, default=None,
                              help='Sampling interval in seconds (default: 1.0)')
    watch_parser.add_argument('--max-snapshots', '-n', type=int, default=None,
                              help='Snapshots kept in the rolling window (default: 10)')
    watch_parser.add_argument('--threshold', '-t', type=float, default=None,
                              help='Growth multiplier that flags a leak (default: 1.1)')
    watch_parser.add_argument('--duration', '-d', type=float, default=10.0,
                              help='How long to watch in seconds (default: 10)')
    watch_parser.add_argument('--trace-heap', action='store_true',
                              help='Measure heap usage with tracemalloc')

    # Log command
    log_parser = subparsers.add_parser('log', help='Log memory usage periodically')
    log_parser.add_argument('--interval', '-i', type=float, default=5.0,
                            help='Logging interval in seconds (default: 5)')
    log_parser.add_argument('--duration', '-d', type=float, default=30.0,
                            help='How long to log in seconds (default: 30)')
    log_parser.add_argument('--label', default='Memory',
                            help='Label prefixed to each line (default: Memory)')

    return parser


def _configure_logging(verbosity):
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.getLogger('memtrend').setLevel(level)


def _ensure_tracing():
    if not tracemalloc.is_tracing():
        tracemalloc.start()


def cmd_snapshot(args):
    """Handle snapshot command."""
    try:
        provider = None
        if args.trace_heap:
            _ensure_tracing()
            provider = TracemallocProvider()
        snapshot = capture_snapshot(provider)
    except EnvironmentUnsupported as e:
        print(f"Failed to read memory usage: {e}")
        return 1

    if args.json:
        print(json.dumps(asdict(snapshot), indent=2))
    else:
        for key, value in format_snapshot(snapshot).items():
            print(f"{key:>13}: {value}")

    return 0


def cmd_watch(args):
    """Handle watch command."""
    overrides = {
        'interval_s': args.interval,
        'max_snapshots': args.max_snapshots,
        'threshold': args.threshold,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    def on_leak(trend):
        print(f"LEAK SUSPECTED: heap grew {trend.growth_rate_percent:.2f}% over "
              f"{trend.sample_count} snapshots (confidence: {trend.confidence.value})")

    try:
        config = MonitorConfig.from_env().merge(on_leak=on_leak, **overrides)
        if args.trace_heap or config.trace_heap:
            _ensure_tracing()
            config = config.merge(trace_heap=True)
        monitor = create_monitor(config)
    except (ValueError, EnvironmentUnsupported) as e:
        print(f"Failed to start monitor: {e}")
        return 1

    print(f"Watching memory for {args.duration:.0f}s "
          f"(interval {config.interval_s}s, window {config.max_snapshots}, "
          f"threshold x{config.threshold})")

    stop = monitor.start()
    try:
        stop.join(timeout=args.duration)
    except EnvironmentUnsupported as e:
        print(f"Sampling failed: {e}")
        return 1
    except KeyboardInterrupt:
        print("Interrupted")
    finally:
        stop()

    trend = monitor.last_trend
    snapshots = monitor.get_snapshots()
    if trend is None:
        print(f"Collected {len(snapshots)} snapshot(s); not enough data for a trend")
    else:
        verdict = "GROWING" if trend.is_growing else "STABLE"
        print(f"Final trend: {verdict} {trend.growth_rate_percent:+.2f}% "
              f"over {trend.sample_count} snapshots ({trend.confidence.value} confidence)")

    return 0


def cmd_log(args):
    """Handle log command."""
    # Snapshots are logged at INFO
    logging.getLogger('memtrend').setLevel(min(logging.INFO, logging.getLogger('memtrend').level))

    try:
        stop = MemoryLogger(interval_s=args.interval, label=args.label).start()
    except (ValueError, EnvironmentUnsupported) as e:
        print(f"Failed to start memory logger: {e}")
        return 1

    try:
        stop.join(timeout=args.duration)
    except EnvironmentUnsupported as e:
        print(f"Sampling failed: {e}")
        return 1
    except KeyboardInterrupt:
        print("Interrupted")
    finally:
        stop()

    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    _configure_logging(args.verbose)

    # Dispatch to command handlers
    handlers = {
        'snapshot': cmd_snapshot,
        'watch': cmd_watch,
        'log': cmd_log,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
