"""Aggregate a multi-page documentation site into an ordered document set.

The pipeline has two phases:

- Discovery: breadth-first scan of same-host navigation links from a seed
- Ingestion: a small worker pool fetches the selected pages through relay
  services, isolates their main content and makes references absolute

Example usage:

    from docbinder import aggregate_site_async, scan_site_async, ingest_links_async

    # Discovery only
    scan = await scan_site_async("https://docs.example.com/", deep=True)
    for link in scan.links:
        print(link.text, link.href)

    # Ingest a subset, keeping catalog order
    docs = await ingest_links_async(scan.links[:10], concurrency=3)

    # Both phases in one call
    result = await aggregate_site_async("https://docs.example.com/", deep=True)
    for doc in result.documents:
        print(doc.title, doc.status)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .config import ConfigOverrides, PipelineConfig, build_pipeline_config
from .content import isolate_main_content, normalize_content, rewrite_references
from .document import DiscoveredLink, Document, FetchResult
from .fetch import FetchError, FetchGateway, FetchTimeout, RelayStrategy
from .ingest import ingest_links, ingest_links_async, select_links
from .links import extract_links
from .progress import CancellationToken, ProgressTracker
from .site import CrawlState, SiteScanResult, scan_site, scan_site_async
from .urls import SeedParseError, normalize_url, parse_seed

__all__ = [
    # Data model
    "DiscoveredLink",
    "Document",
    "FetchResult",
    "SiteScanResult",
    "AggregateResult",
    "CrawlState",
    # Errors
    "SeedParseError",
    "FetchError",
    "FetchTimeout",
    # Building blocks
    "extract_links",
    "isolate_main_content",
    "rewrite_references",
    "normalize_content",
    "normalize_url",
    "parse_seed",
    "FetchGateway",
    "RelayStrategy",
    # Control
    "CancellationToken",
    "ProgressTracker",
    # Discovery
    "scan_site",
    "scan_site_async",
    # Ingestion
    "select_links",
    "ingest_links",
    "ingest_links_async",
    # Whole pipeline
    "aggregate_site",
    "aggregate_site_async",
    # Config
    "ConfigOverrides",
    "PipelineConfig",
    "build_pipeline_config",
    # MCP Server
    "mcp",
]


def get_mcp_server():
    """Get the MCP server instance (lazy import to avoid dependency if not needed)."""
    from .mcp_server import mcp

    return mcp


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


@dataclass
class AggregateResult:
    """Catalog, selection outcome and documents of a full pipeline run."""

    scan: SiteScanResult
    selected: List[DiscoveredLink] = field(default_factory=list)
    documents: List[Document] = field(default_factory=list)

    @property
    def links(self) -> List[DiscoveredLink]:
        return self.scan.links


async def aggregate_site_async(
    url: str,
    *,
    deep: bool = False,
    hrefs: Optional[Iterable[str]] = None,
    limit: Optional[int] = None,
    concurrency: Optional[int] = None,
    cancel: Optional[CancellationToken] = None,
    progress: Optional[ProgressTracker] = None,
    config: Optional[PipelineConfig] = None,
) -> AggregateResult:
    """
    Scan a site, select links and ingest them with one shared gateway.

    Args:
        url: Seed URL.
        deep: Breadth-first discovery instead of the seed page only.
        hrefs: Restrict ingestion to these catalog hrefs.
        limit: Maximum number of links to ingest (default:
            ``config.selection_limit`` when ``hrefs`` is not given).
        concurrency: Worker count (default: ``config.concurrency``).
        cancel: Token shared by both phases.
        progress: Tracker shared by both phases.
        config: Pipeline configuration.

    Returns:
        AggregateResult with the catalog, the selection and the documents.

    Raises:
        SeedParseError: If ``url`` is not a valid seed.
    """
    config = config or build_pipeline_config()
    parse_seed(url)
    cancel = cancel or CancellationToken()
    progress = progress or ProgressTracker()

    async with FetchGateway.from_config(config) as gateway:
        scan = await scan_site_async(
            url,
            deep=deep,
            cancel=cancel,
            gateway=gateway,
            progress=progress,
            config=config,
        )
        if hrefs is None and limit is None:
            limit = config.selection_limit
        selected = select_links(scan.links, hrefs, limit=limit)
        if cancel.is_set():
            return AggregateResult(scan=scan, selected=selected)

        documents = await ingest_links_async(
            selected,
            concurrency=concurrency,
            cancel=cancel,
            gateway=gateway,
            progress=progress,
            config=config,
        )
    return AggregateResult(scan=scan, selected=selected, documents=documents)


def aggregate_site(
    url: str,
    *,
    deep: bool = False,
    hrefs: Optional[Iterable[str]] = None,
    limit: Optional[int] = None,
    concurrency: Optional[int] = None,
    config: Optional[PipelineConfig] = None,
) -> AggregateResult:
    """Synchronous wrapper for aggregate_site_async."""
    return asyncio.run(
        aggregate_site_async(
            url,
            deep=deep,
            hrefs=hrefs,
            limit=limit,
            concurrency=concurrency,
            config=config,
        )
    )
