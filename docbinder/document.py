"""Data structures shared by the discovery and ingestion phases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class DiscoveredLink:
    """Same-host navigation link found during discovery.

    ``href`` is always normalised (see :func:`docbinder.urls.normalize_url`)
    and is the identity of the link inside a catalog.
    """

    href: str
    text: str


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Raw markup retrieved for a URL and the strategy that produced it."""

    url: str
    markup: str
    strategy: str


@dataclass(slots=True)
class Document:
    """Cleaned page content produced by the ingestion pool."""

    url: str
    title: str
    content: str
    status: str  # success, error
    summary: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"
