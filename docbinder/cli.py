"""Command-line interface for site discovery and document aggregation."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import signal
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .cli_config import CONFIG_DIR, CONFIG_ENV_FILE, load_config


def _load_config() -> None:
    """Load .env from the working directory or ~/.config/docbinder."""
    load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
    )


_load_config()

from . import aggregate_site_async
from .cli_output import write_catalog, write_output
from .cli_parsers import parse_fetch_args, parse_scan_args
from .config import ConfigOverrides, PipelineConfig, build_pipeline_config
from .progress import (
    CancellationToken,
    ProgressTracker,
    ReadProgress,
    ScanProgress,
    Snapshot,
    WriteProgress,
    percent,
)
from .site import scan_site_async
from .summarize import GeminiSummarizer, summarize_documents
from .urls import SeedParseError


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_config(args: argparse.Namespace) -> PipelineConfig:
    overrides = ConfigOverrides(
        concurrency=getattr(args, "concurrency", None),
        fetch_timeout=getattr(args, "timeout", None),
        strategies=list(getattr(args, "strategies", None) or []),
    )
    return build_pipeline_config(overrides)


def _log_progress(channel: str, snapshot: Snapshot) -> None:
    if isinstance(snapshot, ScanProgress):
        logging.info(
            "Scanning [%d/%d] %s",
            snapshot.visited_count,
            snapshot.budget,
            snapshot.current_url,
        )
    elif isinstance(snapshot, ReadProgress):
        logging.debug(
            "Reading %d/%d, in flight: %s",
            snapshot.completed_count,
            snapshot.total,
            ", ".join(sorted(snapshot.in_flight_urls)) or "-",
        )
    elif isinstance(snapshot, WriteProgress) and snapshot.completed_count:
        logging.info(
            "Written %d/%d (%d%%): %s",
            snapshot.completed_count,
            snapshot.total,
            percent(snapshot.completed_count, snapshot.total),
            snapshot.last_label,
        )


def _install_interrupt_handler(cancel: CancellationToken) -> None:
    """First Ctrl-C stops the run gracefully, a second one aborts."""
    loop = asyncio.get_running_loop()

    def _on_interrupt() -> None:
        logging.warning("Stopping after in-flight requests (Ctrl-C again to abort)")
        cancel.set()
        loop.remove_signal_handler(signal.SIGINT)

    try:
        loop.add_signal_handler(signal.SIGINT, _on_interrupt)
    except (NotImplementedError, RuntimeError):
        logging.debug("Graceful Ctrl-C handling is not available on this platform")


# =============================================================================
# SCAN COMMAND
# =============================================================================


async def _run_scan_async(args: argparse.Namespace) -> int:
    """Main async entry point for scan."""
    config = _build_config(args)
    cancel = CancellationToken()
    progress = ProgressTracker()
    progress.subscribe(_log_progress)
    _install_interrupt_handler(cancel)

    result = await scan_site_async(
        args.url, deep=args.deep, cancel=cancel, progress=progress, config=config
    )
    for error in result.errors:
        logging.warning("Failed: %s - %s", error["url"], error["error"])

    write_catalog(result.links, args.url, args.output, args.json_output)
    return 0 if result.stats.get("pages_visited") else 1


def scan_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for scan command."""
    args = parse_scan_args(argv)
    _setup_logging(args.verbose)

    try:
        return asyncio.run(_run_scan_async(args))
    except SeedParseError as exc:
        logging.error("%s", exc)
        return 2
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


# =============================================================================
# FETCH COMMAND
# =============================================================================


async def _run_fetch_async(args: argparse.Namespace) -> int:
    """Main async entry point for scan + ingest."""
    config = _build_config(args)
    summarizer = (
        GeminiSummarizer(model=config.gemini_model) if args.summarize else None
    )
    cancel = CancellationToken()
    progress = ProgressTracker()
    progress.subscribe(_log_progress)
    _install_interrupt_handler(cancel)

    result = await aggregate_site_async(
        args.url,
        deep=args.deep,
        hrefs=args.hrefs,
        limit=args.limit,
        concurrency=args.concurrency,
        cancel=cancel,
        progress=progress,
        config=config,
    )

    if not result.selected:
        logging.error("No pages selected from %d discovered links", len(result.links))
        return 1

    docs = result.documents
    if summarizer is not None and not cancel.is_set():
        count = await summarize_documents(
            docs, summarizer, max_chars=config.summary_max_chars
        )
        logging.info("Summarised %d documents", count)

    successful = [d for d in docs if d.status == "success"]
    failed = [d for d in docs if d.status == "error"]
    for doc in failed:
        logging.warning("Failed: %s - %s", doc.url, doc.error_message)

    if not docs:
        logging.error("Run stopped before any document was fetched")
        return 1

    write_output(docs, args.url, args.output, args.json_output, stats=result.scan.stats)
    return 0 if successful else 1


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the aggregate command."""
    args = parse_fetch_args(argv)
    _setup_logging(args.verbose)

    try:
        return asyncio.run(_run_fetch_async(args))
    except SeedParseError as exc:
        logging.error("%s", exc)
        return 2
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
