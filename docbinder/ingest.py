"""Bounded-concurrency retrieval of selected links into cleaned documents."""

from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional

from .config import (
    PLACEHOLDER_LABEL,
    SEED_LABEL,
    PipelineConfig,
    build_pipeline_config,
)
from .content import extract_title, normalize_content
from .document import DiscoveredLink, Document
from .fetch import FetchError, FetchGateway
from .progress import CancellationToken, ProgressTracker
from .urls import normalize_url

LOGGER = logging.getLogger(__name__)


def select_links(
    catalog: List[DiscoveredLink],
    hrefs: Optional[Iterable[str]] = None,
    *,
    limit: Optional[int] = None,
) -> List[DiscoveredLink]:
    """Pick the links to ingest, always in catalog order.

    With ``hrefs`` the selection is the catalog entries whose normalised href
    is in that set. Without it the first ``limit`` entries are selected.
    """
    if hrefs is None:
        return list(catalog if limit is None else catalog[: max(0, limit)])

    wanted = {normalize_url(href) for href in hrefs}
    selected = [link for link in catalog if link.href in wanted]
    if limit is not None:
        selected = selected[: max(0, limit)]
    return selected


def _failed_document(link: DiscoveredLink, error_message: str) -> Document:
    return Document(
        url=link.href,
        title=link.text,
        content="",
        status="error",
        error_message=error_message,
    )


class IngestionPool:
    """Worker pool draining a shared job queue of selected links.

    Each job is attempted exactly once. Per-item failures become error
    documents; cancellation stops new dequeues, and results of fetches that
    complete after the stop are discarded.
    """

    def __init__(
        self,
        links: List[DiscoveredLink],
        *,
        gateway: Any,
        concurrency: int,
        cancel: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.links = self._unique(links)
        self.gateway = gateway
        self.concurrency = max(1, concurrency)
        self.cancel = cancel or CancellationToken()
        self.progress = progress or ProgressTracker()
        self.config = config or build_pipeline_config()
        self._lock = asyncio.Lock()
        self._jobs: Deque[DiscoveredLink] = deque(self.links)
        self._results: Dict[str, Document] = {}

    @staticmethod
    def _unique(links: List[DiscoveredLink]) -> List[DiscoveredLink]:
        seen: Dict[str, DiscoveredLink] = {}
        for link in links:
            if link.href in seen:
                LOGGER.debug("Skipping duplicate selection %s", link.href)
                continue
            seen[link.href] = link
        return list(seen.values())

    def _delay(self) -> float:
        return random.uniform(self.config.ingest_delay_min, self.config.ingest_delay_max)

    async def _next_job(self) -> Optional[DiscoveredLink]:
        async with self._lock:
            if not self._jobs:
                return None
            return self._jobs.popleft()

    async def _process(self, link: DiscoveredLink, worker_id: int) -> Document:
        try:
            markup = await self.gateway.fetch_markup(link.href)
        except FetchError as exc:
            LOGGER.warning("Worker %d failed: %s - %s", worker_id, link.href, exc)
            return _failed_document(link, str(exc))

        try:
            content = normalize_content(markup, link.href)
        except Exception as exc:
            LOGGER.warning(
                "Worker %d could not normalise %s: %s", worker_id, link.href, exc
            )
            return _failed_document(link, f"Normalisation failed: {exc}")

        title = link.text
        if title in (PLACEHOLDER_LABEL, SEED_LABEL):
            title = extract_title(markup) or title
        return Document(url=link.href, title=title, content=content, status="success")

    async def _worker(self, worker_id: int) -> None:
        while not self.cancel.is_set():
            link = await self._next_job()
            if link is None:
                break

            self.progress.read_started(link.href)
            document = await self._process(link, worker_id)
            self.progress.read_finished(link.href)

            if self.cancel.is_set():
                LOGGER.info(
                    "Worker %d discarding %s; run was stopped", worker_id, link.href
                )
                break

            async with self._lock:
                self._results[link.href] = document
            label = document.title if document.ok else f"Error: {document.title}"
            self.progress.document_written(label)

            if await self.cancel.sleep(self._delay()):
                break

    async def run(self) -> List[Document]:
        self.progress.start_ingest(len(self.links))
        LOGGER.info(
            "Ingesting %d links with %d workers", len(self.links), self.concurrency
        )
        workers = [
            asyncio.create_task(self._worker(worker_id))
            for worker_id in range(1, self.concurrency + 1)
        ]
        await asyncio.gather(*workers)

        documents = [
            self._results[link.href] for link in self.links if link.href in self._results
        ]
        LOGGER.info(
            "Ingestion %s: %d/%d documents (%d failed)",
            "stopped" if self.cancel.is_set() else "complete",
            len(documents),
            len(self.links),
            sum(1 for doc in documents if not doc.ok),
        )
        return documents


async def ingest_links_async(
    links: List[DiscoveredLink],
    *,
    concurrency: Optional[int] = None,
    cancel: Optional[CancellationToken] = None,
    gateway: Optional[Any] = None,
    progress: Optional[ProgressTracker] = None,
    config: Optional[PipelineConfig] = None,
) -> List[Document]:
    """
    Fetch and normalise the selected links with a fixed-size worker pool.

    Args:
        links: Selected links, in the order the documents should appear.
        concurrency: Number of workers (default: ``config.concurrency``).
        cancel: Token that stops workers before their next dequeue.
        gateway: Object with an async ``fetch_markup(url)``; a
            :class:`FetchGateway` built from ``config`` is used by default.
        progress: Tracker receiving read/write progress updates.
        config: Pipeline configuration.

    Returns:
        Documents aligned to the order of ``links``. Failed links yield
        ``status="error"`` documents; links that were never processed
        because the run was cancelled are omitted.
    """
    if not links:
        return []

    config = config or build_pipeline_config()
    workers = concurrency if concurrency is not None else config.concurrency

    if gateway is None:
        async with FetchGateway.from_config(config) as owned_gateway:
            return await ingest_links_async(
                links,
                concurrency=workers,
                cancel=cancel,
                gateway=owned_gateway,
                progress=progress,
                config=config,
            )

    pool = IngestionPool(
        links,
        gateway=gateway,
        concurrency=workers,
        cancel=cancel,
        progress=progress,
        config=config,
    )
    return await pool.run()


def ingest_links(
    links: List[DiscoveredLink],
    *,
    concurrency: Optional[int] = None,
    cancel: Optional[CancellationToken] = None,
    progress: Optional[ProgressTracker] = None,
    config: Optional[PipelineConfig] = None,
) -> List[Document]:
    """Synchronous wrapper for ingest_links_async."""
    return asyncio.run(
        ingest_links_async(
            links,
            concurrency=concurrency,
            cancel=cancel,
            progress=progress,
            config=config,
        )
    )
