"""Breadth-first link discovery over a documentation site."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Set

from .config import SEED_LABEL, PipelineConfig, build_pipeline_config
from .document import DiscoveredLink
from .fetch import FetchError, FetchGateway
from .links import extract_links
from .progress import CancellationToken, ProgressTracker
from .urls import hostname_of, parse_seed

LOGGER = logging.getLogger(__name__)


class CrawlState(str, Enum):
    READY = "ready"
    RUNNING = "running"
    DONE = "done"
    STOPPED = "stopped"


@dataclass
class CrawlFrontier:
    """FIFO of pending URLs plus the visited set.

    A URL is enqueued at most once per run, and never after it was visited.
    """

    queue: Deque[str] = field(default_factory=deque)
    visited: Set[str] = field(default_factory=set)
    queued: Set[str] = field(default_factory=set)

    def push(self, url: str) -> bool:
        if url in self.visited or url in self.queued:
            return False
        self.queue.append(url)
        self.queued.add(url)
        return True

    def pop(self) -> str:
        return self.queue.popleft()

    def mark_visited(self, url: str) -> None:
        self.visited.add(url)

    def __len__(self) -> int:
        return len(self.queue)


@dataclass
class SiteScanResult:
    """Result of a discovery run."""

    links: List[DiscoveredLink] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)
    state: CrawlState = CrawlState.READY


class FrontierCrawler:
    """Single-use breadth-first crawler that builds a link catalog.

    Visits are sequential. Shallow mode visits only the seed; deep mode
    follows every newly catalogued link until the page budget is spent, the
    frontier is empty or the run is cancelled.
    """

    def __init__(
        self,
        seed: str,
        *,
        deep: bool = False,
        gateway: Any,
        cancel: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.seed = parse_seed(seed)
        self.seed_host = hostname_of(self.seed)
        self.deep = deep
        self.gateway = gateway
        self.cancel = cancel or CancellationToken()
        self.progress = progress or ProgressTracker()
        self.config = config or build_pipeline_config()
        self.budget = self.config.page_budget(deep)
        self.state = CrawlState.READY
        self.frontier = CrawlFrontier()
        self.catalog: Dict[str, DiscoveredLink] = {}
        self.errors: List[Dict[str, str]] = []

    def _stop(self) -> None:
        if self.state is CrawlState.RUNNING:
            LOGGER.info("Scan stopped after %d pages", len(self.frontier.visited))
            self.state = CrawlState.STOPPED

    def _record(self, page_url: str, links: List[DiscoveredLink]) -> int:
        added = 0
        for link in links:
            if hostname_of(link.href) != self.seed_host or link.href in self.catalog:
                continue
            self.catalog[link.href] = link
            added += 1
            if self.deep:
                self.frontier.push(link.href)
        LOGGER.debug("%s: %d new links (%d total)", page_url, added, len(self.catalog))
        return added

    async def _visit(self, url: str) -> None:
        self.progress.scan_visiting(url)
        try:
            markup = await self.gateway.fetch_markup(url)
        except FetchError as exc:
            LOGGER.warning("Failed to scan %s: %s", url, exc)
            self.errors.append({"url": url, "error": str(exc), "stage": "fetch"})
            return

        if self.cancel.is_set():
            self._stop()
            return

        self.frontier.mark_visited(url)
        self.progress.scan_visited(len(self.frontier.visited))
        self._record(url, extract_links(markup, url))

    async def run(self) -> SiteScanResult:
        if self.state is not CrawlState.READY:
            raise RuntimeError("FrontierCrawler instances can only run once")
        self.state = CrawlState.RUNNING
        self.progress.start_scan(self.budget)
        self.frontier.push(self.seed)
        LOGGER.info(
            "Scanning %s (%s, budget=%d)",
            self.seed,
            "deep" if self.deep else "shallow",
            self.budget,
        )

        while self.frontier and len(self.frontier.visited) < self.budget:
            if self.cancel.is_set():
                self._stop()
                break

            url = self.frontier.pop()
            if url in self.frontier.visited:
                continue

            await self._visit(url)
            if self.state is CrawlState.STOPPED:
                break

            # Politeness delay after every attempt, successful or not.
            if await self.cancel.sleep(self.config.crawl_delay):
                self._stop()
                break

        if self.state is CrawlState.RUNNING:
            self.state = CrawlState.DONE

        links = list(self.catalog.values())
        if self.seed not in self.catalog:
            links.insert(0, DiscoveredLink(href=self.seed, text=SEED_LABEL))

        self.progress.finish_scan("Stopped" if self.state is CrawlState.STOPPED else "Done")
        stats = {
            "pages_visited": len(self.frontier.visited),
            "page_budget": self.budget,
            "links_found": len(links),
            "fetch_failures": len(self.errors),
            "state": self.state.value,
        }
        LOGGER.info(
            "Scan %s: %d pages visited, %d links catalogued, %d failures",
            self.state.value,
            stats["pages_visited"],
            stats["links_found"],
            stats["fetch_failures"],
        )
        return SiteScanResult(
            links=links, errors=list(self.errors), stats=stats, state=self.state
        )


async def scan_site_async(
    url: str,
    *,
    deep: bool = False,
    cancel: Optional[CancellationToken] = None,
    gateway: Optional[Any] = None,
    progress: Optional[ProgressTracker] = None,
    config: Optional[PipelineConfig] = None,
) -> SiteScanResult:
    """
    Discover same-host pages starting from a seed URL.

    Args:
        url: The seed URL. Must be an absolute http(s) URL.
        deep: Follow discovered links breadth-first (budget 50) instead of
            reading only the seed page.
        cancel: Token that stops the scan at the next check.
        gateway: Object with an async ``fetch_markup(url)``; a
            :class:`FetchGateway` built from ``config`` is used by default.
        progress: Tracker receiving scan progress updates.
        config: Pipeline configuration.

    Returns:
        SiteScanResult with the ordered link catalog, errors and stats.

    Raises:
        SeedParseError: If ``url`` is not a valid seed. No request is made.
    """
    config = config or build_pipeline_config()
    parse_seed(url)

    if gateway is None:
        async with FetchGateway.from_config(config) as owned_gateway:
            return await scan_site_async(
                url,
                deep=deep,
                cancel=cancel,
                gateway=owned_gateway,
                progress=progress,
                config=config,
            )

    crawler = FrontierCrawler(
        url,
        deep=deep,
        gateway=gateway,
        cancel=cancel,
        progress=progress,
        config=config,
    )
    return await crawler.run()


def scan_site(
    url: str,
    *,
    deep: bool = False,
    cancel: Optional[CancellationToken] = None,
    progress: Optional[ProgressTracker] = None,
    config: Optional[PipelineConfig] = None,
) -> SiteScanResult:
    """Synchronous wrapper for scan_site_async."""
    return asyncio.run(
        scan_site_async(url, deep=deep, cancel=cancel, progress=progress, config=config)
    )
