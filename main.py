#!/usr/bin/env python3
"""
Idea Generator - turn subreddit discussions into scored product concepts.

Command-line entry point:
  - Run one scrape-and-generate workflow for a topic
  - Run the recurring scheduler
  - Trigger a remote server and watch the run complete
  - Send the interval email digest
  - Refresh the mock fixture from stored posts

Usage:
    python main.py                           # One run for the default topic
    python main.py --topic startups -v       # One run for r/startups, verbose
    python main.py --schedule                # Run every SCHEDULE_INTERVAL_HOURS
    python main.py --remote http://localhost:5001 --topic saas --watch
    python main.py --email-digest --hours 24
    python main.py --sync-mocks
"""

import argparse
import json
import sys

from ideagen.backends import get_backends
from ideagen.config import (
    DEFAULT_TOPIC,
    EMAIL_DIGEST_INTERVAL_HOURS,
    STALE_FALLBACK_LIMIT,
    ensure_valid_config,
    print_config_summary,
    validate_config,
)
from ideagen.digest import send_interval_digest
from ideagen.errors import ConfigurationError
from ideagen.observer import SyncState, SyncStatusObserver, TopicStatusClient
from ideagen.pipeline import IdeaGenPipeline, PipelineConfig, PipelineResult
from ideagen.sources import write_mock_file
from ideagen.utils import normalize_topic_name
from ideagen.workflow import WorkflowDispatcher, WorkflowScheduler


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="ideagen",
        description="Scrape a subreddit, extract pain points and generate product concepts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                 One run for the default topic
  %(prog)s -t r/SaaS                       One run for r/saas
  %(prog)s -t startups --run-id run-1      Resume (or replay) run-1
  %(prog)s --schedule                      Recurring runs for the default topic
  %(prog)s --remote URL -t saas --watch    Trigger a server and wait for completion
  %(prog)s --remote URL --watch --follow  Then keep polling at the idle rate
  %(prog)s --email-digest --hours 48       Email ideas from the last 48 hours
  %(prog)s --sync-mocks                    Export stored posts to the mock fixture
        """,
    )

    # Run options
    parser.add_argument(
        "--topic", "-t",
        default=None,
        metavar="NAME",
        help=f"Subreddit to process (default: {DEFAULT_TOPIC})",
    )

    parser.add_argument(
        "--run-id",
        default=None,
        metavar="ID",
        help="Run id to resume; completed steps are replayed from checkpoints",
    )

    parser.add_argument(
        "--checkpoint-dir",
        default=None,
        metavar="DIR",
        help="Directory for step checkpoints (default: CHECKPOINT_DIR or in-memory)",
    )

    # Modes
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Run the workflow on a fixed schedule until interrupted",
    )

    parser.add_argument(
        "--remote",
        default=None,
        metavar="URL",
        help="Trigger the run on a running web app instead of locally",
    )

    parser.add_argument(
        "--watch", "-w",
        action="store_true",
        help="With --remote: poll the topic until the run completes or looks stuck",
    )

    parser.add_argument(
        "--follow",
        action="store_true",
        help="With --watch: keep polling at the idle rate after the run finishes",
    )

    parser.add_argument(
        "--email-digest",
        action="store_true",
        help="Send recent ideas to all subscribers and exit",
    )

    parser.add_argument(
        "--hours",
        type=int,
        default=None,
        metavar="N",
        help=f"Look-back window for --email-digest (default: {EMAIL_DIGEST_INTERVAL_HOURS})",
    )

    parser.add_argument(
        "--sync-mocks",
        action="store_true",
        help=f"Write the latest {STALE_FALLBACK_LIMIT} stored posts to the mock fixture and exit",
    )

    # Output options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress and debug info",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only show errors and final summary",
    )

    # Info options
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    return parser


def show_config() -> None:
    """Display current configuration."""
    print("=" * 60)
    print("Idea Generator Configuration")
    print("=" * 60)
    print_config_summary()

    errors = validate_config()
    if errors:
        print("\nConfiguration errors:")
        for error in errors:
            print(f"  ⚠️  {error}")
    else:
        print("\n✓ Configuration valid")
    print("=" * 60)


def run_once(args) -> int:
    """Run one workflow locally and print its summary."""
    config = PipelineConfig.from_args(args)

    if not args.quiet:
        print("=" * 60)
        print("Idea Generator Workflow")
        print("=" * 60)
        if args.verbose:
            print("\nConfiguration:")
            print_config_summary()
            print()

    result: PipelineResult = IdeaGenPipeline(config).run()

    if not args.quiet or not result.success:
        print(result.to_summary())

    return 0 if result.success else 1


def run_schedule(args) -> int:
    """Trigger a run now and then every SCHEDULE_INTERVAL_HOURS."""
    def run_workflow(topic: str, run_id: str) -> PipelineResult:
        config = PipelineConfig(topic=topic, run_id=run_id, verbose=args.verbose, quiet=args.quiet)
        result = IdeaGenPipeline(config).run()
        if not args.quiet:
            print(result.to_summary())
        return result

    dispatcher = WorkflowDispatcher(run_workflow)
    scheduler = WorkflowScheduler(dispatcher, topic=normalize_topic_name(args.topic, DEFAULT_TOPIC))
    scheduler.start(run_immediately=True)
    scheduler.run_forever()
    return 0


def run_remote(args) -> int:
    """Trigger a run on a web app, optionally watching it to completion."""
    client = TopicStatusClient(args.remote)
    topic = normalize_topic_name(args.topic, DEFAULT_TOPIC)

    if not args.watch:
        print(json.dumps(client.trigger(topic), indent=2))
        return 0

    observer = SyncStatusObserver(lambda: client.get_last_synced(topic), verbose=args.verbose)
    observer.start_sync()
    ack = client.trigger(topic)
    print(f"Triggered run {ack.get('run_id')} for r/{topic}, waiting for completion...")

    state = observer.wait_for_completion()
    if state == SyncState.COMPLETED:
        print(f"✓ r/{topic} synced at {observer.last_seen.isoformat()}")
        if args.follow:
            print(f"Following r/{topic} every {observer.idle_interval:.0f}s, Ctrl+C to stop")
            observer.watch()
        return 0

    print(f"✗ r/{topic} did not complete within {observer.timeout:.0f}s")
    return 1


def run_email_digest(args) -> int:
    backends = get_backends()
    result = send_interval_digest(backends.store, backends.notifier(args.verbose), hours=args.hours)
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.emails_failed else 0


def sync_mocks(args) -> int:
    """Export the latest stored posts so mock mode serves real-looking data."""
    items = get_backends().store.get_latest_source_items(STALE_FALLBACK_LIMIT)
    if not items:
        print("⚠️  No posts found in storage")
        return 0

    path = write_mock_file(items)
    print(f"✓ Synced {len(items)} posts to {path}")
    return 0


def main(argv: list = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command-line arguments (default: sys.argv[1:]).

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle --show-config
    if args.show_config:
        show_config()
        return 0

    if args.watch and not args.remote:
        parser.error("--watch requires --remote")
    if args.follow and not args.watch:
        parser.error("--follow requires --watch")

    try:
        ensure_valid_config()
    except ConfigurationError as e:
        print("❌ Configuration errors:")
        for error in e.errors:
            print(f"  - {error}")
        return 1

    try:
        if args.sync_mocks:
            return sync_mocks(args)
        if args.email_digest:
            return run_email_digest(args)
        if args.remote:
            return run_remote(args)
        if args.schedule:
            return run_schedule(args)
        return run_once(args)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except Exception as e:
        print(f"\n❌ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
