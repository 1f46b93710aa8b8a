"""MCP Server for documentation site discovery and aggregation.

Provides tools for:
- Scanning a documentation site for its navigation links
- Fetching the selected pages as cleaned, absolutised documents

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for Claude Desktop, etc.)
    python -m docbinder.mcp_server

    # HTTP (for remote access)
    python -m docbinder.mcp_server --transport http --port 8000

    # Or via FastMCP CLI
    fastmcp run docbinder/mcp_server.py:mcp --transport http --port 8000

Environment Variables:
    DOCBINDER_STRATEGIES: Comma-separated fetch strategies (default: allorigins,corsproxy)
    DOCBINDER_CONCURRENCY: Ingestion workers (default: 3)
    GEMINI_API_KEY: Required for summaries
"""

from __future__ import annotations

import argparse
import json
import logging
from enum import Enum
from typing import List, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from .cli_output import (
    build_bundle,
    format_catalog_markdown,
    format_timestamp,
    link_to_dict,
)
from .config import build_pipeline_config
from .content import html_to_text
from .document import Document
from .urls import SeedParseError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

# Load .env before reading environment variables
load_dotenv()

mcp = FastMCP(
    name="Documentation Binder",
    instructions="""
    A documentation aggregation server that provides:

    1. scan_site: Discover the pages of a documentation site from a seed URL.
       Returns the link catalog (href + label), same host only.

    2. fetch_docs: Scan a site and fetch the selected pages. Each page is
       reduced to its main content with absolute links and image sources.

    Output formats:
    - markdown: Readable text, one section per page (default)
    - json: Full details including HTML content, status and statistics
    """,
)


class OutputFormat(str, Enum):
    """Output format for tool results."""

    markdown = "markdown"
    json = "json"


def _parse_format(output_format: str) -> OutputFormat:
    try:
        return OutputFormat(output_format.lower())
    except ValueError:
        return OutputFormat.markdown


def _error_payload(message: str, url: str) -> str:
    LOGGER.error(message)
    return json.dumps({"error": message, "url": url}, ensure_ascii=False)


def _format_doc_markdown(doc: Document) -> str:
    lines = [f"# {doc.title}", f"_{doc.url}_", ""]
    if doc.status == "error":
        lines.append(f"**Error:** {doc.error_message}")
    else:
        if doc.summary:
            lines.extend(["**Summary:**", doc.summary, ""])
        lines.append(html_to_text(doc.content))
    return "\n".join(lines)


def _format_docs(
    docs: List[Document],
    seed_url: str,
    output_format: OutputFormat,
    stats: Optional[dict] = None,
) -> str:
    if output_format == OutputFormat.json:
        return json.dumps(
            build_bundle(docs, seed_url, stats=stats), indent=2, ensure_ascii=False
        )
    header = f"_Fetched: {format_timestamp()}_\n"
    return header + "\n\n---\n\n".join(_format_doc_markdown(doc) for doc in docs)


# =============================================================================
# DOCUMENTATION TOOLS
# =============================================================================


@mcp.tool
async def scan_site(
    url: str,
    deep: bool = False,
    output_format: str = "markdown",
):
    """
    Discover the pages of a documentation site.

    Args:
        url: Seed URL (http or https)
        deep: Follow navigation links breadth-first, up to 50 pages
            (default: false, only the seed page is read)
        output_format: "markdown" (default) numbered link list, or "json"

    Returns:
        The link catalog in the specified format.

    Examples:
        scan_site(url="https://docs.example.com/")
        scan_site(url="https://docs.example.com/", deep=True, output_format="json")
    """
    from . import scan_site_async

    fmt = _parse_format(output_format)
    LOGGER.info("Scanning %s (deep=%s)", url, deep)

    try:
        result = await scan_site_async(url, deep=deep)
    except SeedParseError as exc:
        return _error_payload(str(exc), url)

    LOGGER.info(
        "Scan complete: %d links from %d pages",
        len(result.links),
        result.stats.get("pages_visited", 0),
    )

    if fmt == OutputFormat.json:
        return json.dumps(
            {
                "seed_url": url,
                "links": [link_to_dict(link) for link in result.links],
                "errors": result.errors,
                "stats": result.stats,
            },
            indent=2,
            ensure_ascii=False,
        )
    return format_catalog_markdown(result.links, url)


@mcp.tool
async def fetch_docs(
    url: str,
    deep: bool = False,
    hrefs: Optional[List[str]] = None,
    limit: Optional[int] = None,
    concurrency: Optional[int] = None,
    output_format: str = "markdown",
    summarize: bool = False,
):
    """
    Scan a documentation site and fetch the selected pages.

    Args:
        url: Seed URL (http or https)
        deep: Breadth-first discovery instead of the seed page only
        hrefs: Only fetch these URLs from the catalog (default: all, up to limit)
        limit: Maximum pages to fetch (default: 50 when no hrefs are given)
        concurrency: Concurrent fetch workers (default: 3)
        output_format: "markdown" (default) readable text, or "json" with HTML
        summarize: Add a Gemini summary per page (needs GEMINI_API_KEY)

    Returns:
        The documents in catalog order, failures included, in the
        specified format.

    Examples:
        fetch_docs(url="https://docs.example.com/", limit=5)
        fetch_docs(url="https://docs.example.com/", deep=True, output_format="json")
        fetch_docs(
            url="https://docs.example.com/",
            hrefs=["https://docs.example.com/install"],
            summarize=True,
        )
    """
    from . import aggregate_site_async
    from .summarize import GeminiSummarizer, summarize_documents

    fmt = _parse_format(output_format)
    config = build_pipeline_config()
    LOGGER.info("Fetching docs from %s (deep=%s)", url, deep)

    summarizer = None
    if summarize:
        try:
            summarizer = GeminiSummarizer(model=config.gemini_model)
        except ValueError as exc:
            return _error_payload(str(exc), url)

    try:
        result = await aggregate_site_async(
            url,
            deep=deep,
            hrefs=hrefs,
            limit=limit,
            concurrency=concurrency,
            config=config,
        )
    except SeedParseError as exc:
        return _error_payload(str(exc), url)

    docs = result.documents
    if summarizer is not None:
        await summarize_documents(docs, summarizer, max_chars=config.summary_max_chars)

    successful = sum(1 for d in docs if d.status == "success")
    LOGGER.info("Completed: %d/%d successful", successful, len(docs))

    return _format_docs(docs, url, fmt, stats=result.scan.stats)


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the documentation binder MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
    DOCBINDER_STRATEGIES   Fetch strategies in order (default: allorigins,corsproxy)
    DOCBINDER_CONCURRENCY  Ingestion workers (default: 3)
    GEMINI_API_KEY         API key for summaries

Examples:
    # STDIO transport (default, for Claude Desktop)
    python -m docbinder.mcp_server

    # HTTP transport (for remote access)
    python -m docbinder.mcp_server --transport http --port 8000

    # Custom host/port
    python -m docbinder.mcp_server --transport http --host 0.0.0.0 --port 9000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    config = build_pipeline_config()
    LOGGER.info("Fetch strategies: %s", ", ".join(config.strategies))

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
