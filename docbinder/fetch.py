"""Resilient markup retrieval through an ordered chain of relay strategies.

Public relay services are individually unreliable, so each URL is tried
against every configured strategy in turn. A timeout, non-success status,
transport error or empty payload moves on to the next strategy; only when
all of them fail does :class:`FetchError` reach the caller.

Example::

    async with FetchGateway.from_config(build_pipeline_config()) as gateway:
        markup = await gateway.fetch_markup("https://docs.example.com/")
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from .config import (
    DEFAULT_USER_AGENT,
    FETCH_TIMEOUT_SECONDS,
    PipelineConfig,
    build_pipeline_config,
)
from .document import FetchResult

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class FetchError(Exception):
    """Raised when markup could not be retrieved for a URL."""

    def __init__(
        self,
        message: str,
        url: str = "",
        attempts: Optional[List[Dict[str, str]]] = None,
    ):
        self.url = url
        self.attempts = list(attempts or [])
        super().__init__(message)


class FetchTimeout(FetchError):
    """A single strategy did not answer within the timeout."""


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RelayStrategy:
    """One way of reaching a target URL.

    ``template`` receives the target as ``{url}``; it is percent-encoded when
    ``quote_target`` is set. When ``payload_field`` is set the response is a
    JSON wrapper and the markup lives under that key.
    """

    name: str
    template: str
    payload_field: Optional[str] = None
    quote_target: bool = True

    def build_url(self, target: str) -> str:
        value = quote(target, safe="") if self.quote_target else target
        return self.template.format(url=value)

    def unwrap(self, response: httpx.Response) -> str:
        if self.payload_field is None:
            return response.text
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"{self.name} returned a non-object payload")
        value = data.get(self.payload_field)
        return value if isinstance(value, str) else ""


ALLORIGINS = RelayStrategy(
    name="allorigins",
    template="https://api.allorigins.win/get?url={url}",
    payload_field="contents",
)
CORSPROXY = RelayStrategy(
    name="corsproxy",
    template="https://corsproxy.io/?url={url}",
)
DIRECT = RelayStrategy(name="direct", template="{url}", quote_target=False)

STRATEGIES: Dict[str, RelayStrategy] = {
    strategy.name: strategy for strategy in (ALLORIGINS, CORSPROXY, DIRECT)
}


def resolve_strategies(names: Sequence[str]) -> List[RelayStrategy]:
    """Map configured strategy names to strategies, keeping their order."""
    resolved: List[RelayStrategy] = []
    for name in names:
        strategy = STRATEGIES.get(name.strip().lower())
        if strategy is None:
            raise ValueError(
                f"Unknown fetch strategy '{name}' (known: {', '.join(STRATEGIES)})"
            )
        if strategy not in resolved:
            resolved.append(strategy)
    if not resolved:
        raise ValueError("At least one fetch strategy is required")
    return resolved


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class FetchGateway:
    """Fetch markup for a URL via the first strategy that succeeds."""

    def __init__(
        self,
        strategies: Optional[Sequence[RelayStrategy]] = None,
        *,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.strategies: List[RelayStrategy] = list(strategies or (ALLORIGINS, CORSPROXY))
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(
        cls, config: PipelineConfig, client: Optional[httpx.AsyncClient] = None
    ) -> "FetchGateway":
        return cls(
            resolve_strategies(config.strategies),
            timeout=config.fetch_timeout,
            user_agent=config.user_agent,
            client=client,
        )

    async def __aenter__(self) -> "FetchGateway":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                timeout=self.timeout,
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _attempt(self, strategy: RelayStrategy, url: str) -> str:
        client = self._ensure_client()
        request_url = strategy.build_url(url)
        try:
            response = await asyncio.wait_for(
                client.get(request_url), timeout=self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise FetchTimeout(
                f"{strategy.name} timed out after {self.timeout:g}s", url=url
            ) from exc
        except httpx.RequestError as exc:
            raise FetchError(f"{strategy.name} request failed: {exc}", url=url) from exc
        except httpx.InvalidURL as exc:
            raise FetchError(f"{strategy.name} rejected the URL: {exc}", url=url) from exc

        if not response.is_success:
            raise FetchError(
                f"{strategy.name} returned HTTP {response.status_code}", url=url
            )

        try:
            markup = strategy.unwrap(response)
        except ValueError as exc:
            raise FetchError(
                f"{strategy.name} returned an unreadable payload: {exc}", url=url
            ) from exc

        if not markup.strip():
            raise FetchError(f"{strategy.name} returned an empty document", url=url)
        return markup

    async def fetch(self, url: str) -> FetchResult:
        """Try each strategy in order and return the first usable markup.

        Raises:
            FetchError: When every strategy failed. ``attempts`` lists the
                reason reported by each strategy.
        """
        attempts: List[Dict[str, str]] = []
        for strategy in self.strategies:
            try:
                markup = await self._attempt(strategy, url)
            except FetchError as exc:
                LOGGER.debug("Strategy %s failed for %s: %s", strategy.name, url, exc)
                attempts.append({"strategy": strategy.name, "error": str(exc)})
                continue
            LOGGER.debug("Fetched %s via %s", url, strategy.name)
            return FetchResult(url=url, markup=markup, strategy=strategy.name)

        raise FetchError(
            f"Could not fetch {url}: all {len(attempts)} retrieval strategies failed. "
            "The site may be blocking automated access.",
            url=url,
            attempts=attempts,
        )

    async def fetch_markup(self, url: str) -> str:
        result = await self.fetch(url)
        return result.markup


async def fetch_markup(url: str, config: Optional[PipelineConfig] = None) -> str:
    """One-off fetch using a temporary gateway."""
    async with FetchGateway.from_config(config or build_pipeline_config()) as gateway:
        return await gateway.fetch_markup(url)
