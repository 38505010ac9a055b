#!/usr/bin/env python3
"""CLI entry point for the lead intake service.

Operator commands map one-to-one onto service methods. Every command
prints JSON on stdout.

Usage:
    leadintake init-db
    leadintake worker
    leadintake process --batch-size 20
    leadintake stats
    leadintake list --status failed
    leadintake retry 6f1c...-...

Example:
    # Create tables, then run the scheduler with verbose logging
    leadintake init-db
    leadintake worker --verbose
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, Optional

from .config import Config, ConfigError, config as default_config
from .errors import LeadIntakeError
from .integrations.sendgrid import build_transport
from .logging_utils import get_logger, setup_logging
from .models import NotificationStatus
from .models.database import DatabaseManager, close_database, init_database
from .notifications import NotificationQueue, NotificationWorker
from .services import InquiryService, QuoteService
from .store import RecordStore
from .utils.email_templates import Branding


def print_json(payload: Any) -> None:
    """Print a payload as indented JSON."""
    print(json.dumps(payload, indent=2, default=str))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="leadintake",
        description="Lead intake and notification queue operations",
        epilog="""
Examples:
  %(prog)s init-db
  %(prog)s worker --verbose
  %(prog)s list --status failed
  %(prog)s retry <notification-id>
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    output = parser.add_argument_group("output options")
    output.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output (INFO level logging)",
    )
    output.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output (DEBUG level logging)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables")

    worker = commands.add_parser("worker", help="Run the notification queue scheduler")
    worker.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between queue drains (default: QUEUE_POLL_INTERVAL_SECONDS)",
    )
    worker.add_argument(
        "--sweep-interval",
        type=float,
        default=None,
        help="Seconds between queue health sweeps (default: QUEUE_SWEEP_INTERVAL_SECONDS)",
    )

    process = commands.add_parser("process", help="Drain one batch of pending notifications")
    process.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Messages to deliver (default: QUEUE_BATCH_SIZE)",
    )

    commands.add_parser("stats", help="Show queue, inquiry and quote statistics")

    list_cmd = commands.add_parser("list", help="List queued notifications")
    list_cmd.add_argument(
        "--status",
        choices=[status.value for status in NotificationStatus],
        default=None,
        help="Only list notifications with this status",
    )
    list_cmd.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    list_cmd.add_argument("--limit", type=int, default=20, help="Page size (default: 20)")

    retry = commands.add_parser("retry", help="Reset and redeliver one notification")
    retry.add_argument("notification_id", help="Notification ID")

    return parser


def build_queue(store: RecordStore, cfg: Config) -> NotificationQueue:
    """Wire the notification queue from configuration."""
    return NotificationQueue(
        store,
        build_transport(cfg),
        from_email=cfg.SENDGRID_FROM_EMAIL,
    )


async def run_worker(queue: NotificationQueue, cfg: Config, args: argparse.Namespace) -> None:
    """Run the scheduler until SIGINT or SIGTERM."""
    worker = NotificationWorker(
        queue,
        poll_interval=args.poll_interval or cfg.QUEUE_POLL_INTERVAL_SECONDS,
        sweep_interval=args.sweep_interval or cfg.QUEUE_SWEEP_INTERVAL_SECONDS,
        batch_size=cfg.QUEUE_BATCH_SIZE,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    await worker.run(stop_event)


async def run_command(args: argparse.Namespace, cfg: Config) -> Any:
    """Execute one CLI command and return its JSON-serializable result."""
    if args.command == "init-db":
        await init_database()
        return {"status": "ok", "message": "Database tables created"}

    store = await RecordStore.from_database_manager()
    queue = build_queue(store, cfg)

    if args.command == "worker":
        cfg.validate_for_worker()
        await run_worker(queue, cfg, args)
        return {"status": "stopped"}

    if args.command == "process":
        result = await queue.drain_batch(args.batch_size or cfg.QUEUE_BATCH_SIZE)
        return result.to_dict()

    if args.command == "stats":
        branding = Branding.from_config(cfg)
        inquiries = InquiryService(store, queue, admin_email=cfg.ADMIN_EMAIL, branding=branding)
        quotes = QuoteService(store, queue, branding=branding)
        return {
            "email_configured": cfg.is_email_configured(),
            "queue": (await queue.get_stats()).to_dict(),
            "inquiries": await inquiries.get_stats(),
            "quotes": await quotes.get_stats(),
        }

    if args.command == "list":
        page = await queue.list_messages(args.status, page=args.page, limit=args.limit)
        return page.to_dict()

    if args.command == "retry":
        result = await queue.retry(args.notification_id)
        return {"id": args.notification_id, **result.to_dict()}

    raise ValueError(f"Unknown command: {args.command}")


async def run(args: argparse.Namespace, cfg: Config, logger: logging.Logger) -> int:
    """Run a command and always release the database engine."""
    try:
        payload = await run_command(args, cfg)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        print_json({"status": "error", "error": str(e)})
        return 2
    except LeadIntakeError as e:
        logger.error("%s: %s", e.__class__.__name__, e)
        print_json({"status": "error", "error": str(e)})
        return 1
    finally:
        await close_database()

    print_json(payload)
    return 0


def main(argv: Optional[list[str]] = None, cfg: Optional[Config] = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    cfg = cfg or default_config

    level = cfg.LOG_LEVEL
    if args.debug or cfg.DEBUG:
        level = "DEBUG"
    elif args.verbose:
        level = "INFO"
    setup_logging(level=level, structured=not cfg.is_development())
    logger = get_logger(__name__)

    try:
        cfg.validate_for_database()
        DatabaseManager.get_database_url()
    except (ConfigError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        print_json({"status": "error", "error": str(e)})
        return 2

    return asyncio.run(run(args, cfg, logger))


if __name__ == "__main__":
    sys.exit(main())
