# src/main.py — v1
"""CLI entry point — watch, sync, reindex, search commands.

Usage:
    staffsync watch
    staffsync sync <record_id>
    staffsync reindex [--reset]
    staffsync search <text> [-k N]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from staffsync.config.settings import ConfigurationError, Settings, load_settings
from staffsync.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(_execute(args, settings))
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="staffsync",
        description=f"staffsync v{__version__} — keep a vector index in sync with CouchDB",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- watch ---
    p_watch = subparsers.add_parser(
        "watch", help="Follow the change feed and keep the index in sync",
    )
    p_watch.set_defaults(func=_cmd_watch)

    # --- sync ---
    p_sync = subparsers.add_parser(
        "sync", help="Re-sync the entity owning one record",
    )
    p_sync.add_argument("record_id", help="Any record id of the entity (e.g. employee_1_42)")
    p_sync.set_defaults(func=_cmd_sync)

    # --- reindex ---
    p_reindex = subparsers.add_parser(
        "reindex", help="Sync every entity in the database",
    )
    p_reindex.add_argument(
        "--reset", action="store_true",
        help="Delete existing embeddings before reindexing",
    )
    p_reindex.set_defaults(func=_cmd_reindex)

    # --- search ---
    p_search = subparsers.add_parser(
        "search", help="Query the index (diagnostics)",
    )
    p_search.add_argument("text", help="Query text")
    p_search.add_argument(
        "-k", "--top-k", dest="top_k", type=int, default=5,
        help="Number of results (default: 5)",
    )
    p_search.set_defaults(func=_cmd_search)

    return parser


async def _execute(args: argparse.Namespace, settings: Settings) -> int:
    from staffsync.api.facade import build_sync_service

    service = build_sync_service(settings)
    try:
        return await args.func(args, service)
    finally:
        await service.aclose()


async def _cmd_watch(args: argparse.Namespace, service) -> int:
    """Follow the change feed until SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, service.stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass

    await service.run()
    stats = service.orchestrator.stats
    print(f"\nStopped. Outcomes: {stats}")
    return 0


async def _cmd_sync(args: argparse.Namespace, service) -> int:
    """Sync one entity and print the outcome."""
    result = await service.sync_entity(args.record_id)
    entity = result.entity_id or "-"
    print(f"{result.record_id}: {result.outcome} (entity {entity})")
    if result.error:
        print(f"  Error: {result.error}")
    return 1 if result.outcome == "failed" else 0


async def _cmd_reindex(args: argparse.Namespace, service) -> int:
    """Reindex every entity."""
    report = await service.reindex_all(reset=args.reset)

    print("\nReindex complete:")
    print(f"  Entities:   {report.total}")
    print(f"  Indexed:    {report.indexed}")
    print(f"  Unchanged:  {report.unchanged}")
    print(f"  Removed:    {report.removed}")
    print(f"  Failed:     {report.failed}")
    print(f"  Duration:   {report.duration_seconds:.1f}s")
    for failure in report.failures:
        print(f"  ! {failure.record_id}: {failure.error}")
    return 1 if report.failed else 0


async def _cmd_search(args: argparse.Namespace, service) -> int:
    """Print the closest entities to a query."""
    results = await service.search(args.text, k=args.top_k)
    if not results:
        print("No results.")
        return 0
    for rank, hit in enumerate(results, start=1):
        preview = hit.text.replace("\n", "; ")
        if len(preview) > 120:
            preview = preview[:120] + "..."
        print(f"{rank}. entity {hit.entity_id} (distance {hit.distance:.4f}) {preview}")
    return 0


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from staffsync.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
