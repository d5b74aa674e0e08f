"""Operational command line for the session store.

Usage:
    # Counts of stored sessions
    orderflow-sessions stats

    # Size and age figures
    orderflow-sessions memory

    # Delete stale sessions and compact oversized ones
    orderflow-sessions sweep [--dry-run]

    # Run periodic sweeps in the foreground, serving metrics if enabled
    orderflow-sessions schedule [--interval SECONDS]

    # Inspect, compact or delete one session (missing keys are reported,
    # never created)
    orderflow-sessions check USER_ID CHAT_ID
    orderflow-sessions optimize USER_ID CHAT_ID [--dry-run]
    orderflow-sessions delete USER_ID CHAT_ID

Session locks live in the memory of one process. Against the jsonfile
backend, every write here rewrites the whole file the bot also writes, so
a sweep or optimize running next to a live bot can overwrite its changes
and the other way round. Run these commands while the bot is stopped, or
sweep from inside the bot process with ``CompactionScheduler`` on the
bot's own ``SessionService``.
"""

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from typing import Any

from prometheus_client import start_http_server

from orderflow.compaction import CompactionScheduler, SweepResult
from orderflow.config import get_settings
from orderflow.config.models.observability import MetricsConfig
from orderflow.errors import OrderflowError
from orderflow.observability.logging import get_logger, setup_logging
from orderflow.sessions import SessionService

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orderflow-sessions",
        description="Inspect and maintain stored conversation sessions",
        epilog=(
            "Locks are per process: with the jsonfile backend, do not run write "
            "commands while the bot is writing the same file."
        ),
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("stats", help="Count stored sessions")
    commands.add_parser("memory", help="Show size and age figures")

    sweep = commands.add_parser("sweep", help="Delete stale and compact oversized sessions")
    sweep.add_argument("--dry-run", action="store_true", help="Report without persisting")

    schedule = commands.add_parser(
        "schedule",
        help="Run periodic sweeps until interrupted (stop the bot first when using jsonfile)",
    )
    schedule.add_argument(
        "--interval", type=float, default=None, help="Seconds between sweeps (config default)"
    )

    for name, help_text in (
        ("check", "Show the size report of one session"),
        ("optimize", "Compact one session"),
        ("delete", "Delete one session"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("user_id", type=int)
        command.add_argument("chat_id", type=int)
        if name == "optimize":
            command.add_argument("--dry-run", action="store_true", help="Report without persisting")

    return parser


async def run_command(args: argparse.Namespace, service: SessionService) -> dict[str, Any]:
    """Execute a parsed command and return its JSON-serializable result."""
    optimizer = service.optimizer

    if args.command == "stats":
        return (await service.stats()).model_dump()

    if args.command == "memory":
        return (await optimizer.memory_stats(service)).model_dump()

    if args.command == "sweep":
        return (await optimizer.sweep(service, dry_run=args.dry_run)).model_dump()

    if args.command == "check":
        session = await service.find(args.user_id, args.chat_id)
        return optimizer.check_size(session).model_dump(mode="json")

    if args.command == "optimize":
        session = await service.find(args.user_id, args.chat_id)
        _, report = optimizer.optimize(session)
        if not args.dry_run and report.removed_fields:
            async with service.transaction(args.user_id, args.chat_id) as tx:
                tx.session, report = optimizer.optimize(tx.session)
        return {
            **report.model_dump(),
            "bytes_saved": report.bytes_saved,
            "compression_ratio": round(report.compression_ratio, 4),
            "dry_run": args.dry_run,
        }

    if args.command == "delete":
        removed = await service.delete(args.user_id, args.chat_id)
        return {"removed": removed}

    raise ValueError(f"Unknown command: {args.command}")


async def serve_sweeps(
    service: SessionService,
    metrics: MetricsConfig,
    interval_seconds: float | None = None,
    stop: asyncio.Event | None = None,
) -> SweepResult | None:
    """Run the compaction scheduler until stopped.

    Prometheus metrics are served on the configured port while it runs.
    Returns the result of the last completed sweep.
    """
    if metrics.enabled:
        start_http_server(metrics.port, addr=metrics.host)
        logger.info("metrics_server_started", host=metrics.host, port=metrics.port)

    scheduler = CompactionScheduler(service.optimizer, service, interval_seconds)
    await scheduler.start()
    try:
        await (stop or asyncio.Event()).wait()
    finally:
        await scheduler.stop()
    return scheduler.last_result


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_pii=log_config.redact_pii,
        redact_keys=log_config.redact_keys,
    )

    service = SessionService.from_settings(settings)

    if args.command == "schedule":
        try:
            asyncio.run(
                serve_sweeps(service, settings.observability.metrics, args.interval)
            )
        except KeyboardInterrupt:
            logger.info("schedule_interrupted")
        return 0

    try:
        result = asyncio.run(run_command(args, service))
    except OrderflowError as e:
        logger.error("command_failed", command=args.command, error=e.message)
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
