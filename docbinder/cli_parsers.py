"""Argument parser construction for CLI commands."""

from __future__ import annotations

import argparse
from typing import List, Optional

from .config import DEFAULT_CONCURRENCY, DEFAULT_SELECTION_LIMIT
from .fetch import STRATEGIES


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "url",
        help="Seed URL of the documentation site",
    )
    parser.add_argument(
        "--deep",
        action="store_true",
        help="Follow navigation links breadth-first (up to 50 pages) "
             "instead of reading only the seed page",
    )
    parser.add_argument(
        "--strategy",
        dest="strategies",
        action="append",
        choices=sorted(STRATEGIES),
        default=None,
        help="Fetch strategy to use, in order; repeat for fallbacks "
             "(default: allorigins then corsproxy)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-strategy fetch timeout in seconds (default: 10)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Output file (JSON / catalog) or directory (HTML documents)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_scan_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docbinder-scan",
        description="Discover the pages of a documentation site.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Links of the seed page (markdown list)
  docbinder-scan https://docs.example.com/

  # Breadth-first discovery, JSON catalog to a file
  docbinder-scan https://docs.example.com/ --deep --json -o catalog.json

  # Fetch the site directly instead of through relays
  docbinder-scan https://docs.example.com/ --strategy direct
""",
    )
    _add_common_args(parser)
    return parser.parse_args(argv)


def parse_fetch_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docbinder",
        description="Scan a documentation site and aggregate its pages.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Seed page plus the pages it links to, one HTML file per page
  docbinder https://docs.example.com/ -o docs/

  # Deep scan, JSON bundle with AI summaries
  docbinder https://docs.example.com/ --deep --summarize --json -o bundle.json

  # Only selected pages, five workers
  docbinder https://docs.example.com/ --select https://docs.example.com/install \\
      --select https://docs.example.com/config --concurrency 5 -o docs/
""",
    )
    _add_common_args(parser)
    parser.add_argument(
        "--select",
        dest="hrefs",
        action="append",
        default=None,
        help="Ingest only this discovered URL; repeat to select several",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help=f"Maximum pages to ingest (default: {DEFAULT_SELECTION_LIMIT} "
             "when no --select is given)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help=f"Concurrent fetch workers (default: {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument(
        "--summarize",
        action="store_true",
        help="Add a Gemini summary to every document (needs GEMINI_API_KEY)",
    )
    return parser.parse_args(argv)
