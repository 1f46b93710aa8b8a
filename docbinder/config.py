"""Pipeline settings, region priority lists and environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .markup import (
    Predicate,
    any_of,
    attr_equals,
    class_mentions,
    has_attr,
    has_class,
    has_id,
    tag_named,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3
SHALLOW_PAGE_BUDGET = 1
DEEP_PAGE_BUDGET = 50
DEFAULT_SELECTION_LIMIT = 50
FETCH_TIMEOUT_SECONDS = 10.0
CRAWL_DELAY_SECONDS = 0.5
INGEST_DELAY_RANGE: Tuple[float, float] = (0.3, 0.8)
SUMMARY_MAX_CHARS = 20_000
NAV_LINK_THRESHOLD = 5
DEFAULT_STRATEGIES: Tuple[str, ...] = ("allorigins", "corsproxy")
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_USER_AGENT = "docbinder/0.1 (+documentation aggregator)"

PLACEHOLDER_LABEL = "Untitled"
SEED_LABEL = "Home / Entry"

# Navigation-dense regions searched for links, highest priority first.
NAVIGATION_REGIONS: List[Predicate] = [
    tag_named("nav"),
    tag_named("aside"),
    attr_equals("role", "navigation"),
    has_id("sidebar"),
    has_class("sidebar"),
    has_class("nav-list"),
    has_class("menu"),
    class_mentions("sidebar"),
    class_mentions("menu"),
    class_mentions("nav"),
]

# Main content regions (documentation frameworks, article landmarks).
CONTENT_REGIONS: List[Predicate] = [
    tag_named("main"),
    tag_named("article"),
    attr_equals("role", "main"),
    has_id("content"),
    has_id("main-content"),
    has_class("markdown-body"),
    has_class("documentation-content"),
    has_class("doc-content"),
    has_class("docs-content"),
    has_class("md-content"),
    has_class("prose"),
    has_class("main-content"),
    has_id("content-area"),
    has_attr("data-docs-content"),
]

# Removed before any region lookup.
STRIPPED_NODES: Predicate = tag_named("script", "style", "iframe", "frame", "noscript")

# Removed from the body when no content region matched.
CHROME_REGIONS: Predicate = any_of(
    tag_named("nav", "header", "footer", "aside"),
    attr_equals("role", "navigation"),
    class_mentions("sidebar"),
    class_mentions("toc"),
    class_mentions("breadcrumb"),
)


@dataclass
class PipelineConfig:
    """Tunables for discovery, retrieval and ingestion."""

    concurrency: int = DEFAULT_CONCURRENCY
    shallow_budget: int = SHALLOW_PAGE_BUDGET
    deep_budget: int = DEEP_PAGE_BUDGET
    selection_limit: int = DEFAULT_SELECTION_LIMIT
    fetch_timeout: float = FETCH_TIMEOUT_SECONDS
    crawl_delay: float = CRAWL_DELAY_SECONDS
    ingest_delay_min: float = INGEST_DELAY_RANGE[0]
    ingest_delay_max: float = INGEST_DELAY_RANGE[1]
    strategies: List[str] = field(default_factory=lambda: list(DEFAULT_STRATEGIES))
    summary_max_chars: int = SUMMARY_MAX_CHARS
    gemini_model: str = DEFAULT_GEMINI_MODEL
    user_agent: str = DEFAULT_USER_AGENT

    def page_budget(self, deep: bool) -> int:
        return self.deep_budget if deep else self.shallow_budget


@dataclass
class ConfigOverrides:
    """Optional per-run overrides."""

    concurrency: Optional[int] = None
    fetch_timeout: Optional[float] = None
    crawl_delay: Optional[float] = None
    ingest_delay_min: Optional[float] = None
    ingest_delay_max: Optional[float] = None
    strategies: List[str] = field(default_factory=list)
    selection_limit: Optional[int] = None
    gemini_model: Optional[str] = None
    user_agent: Optional[str] = None


def _apply_overrides(config: PipelineConfig, overrides: ConfigOverrides) -> None:
    """Apply optional overrides to a PipelineConfig."""
    if overrides.concurrency is not None:
        config.concurrency = max(1, overrides.concurrency)
    if overrides.fetch_timeout is not None:
        config.fetch_timeout = overrides.fetch_timeout
    if overrides.crawl_delay is not None:
        config.crawl_delay = overrides.crawl_delay
    if overrides.ingest_delay_min is not None:
        config.ingest_delay_min = overrides.ingest_delay_min
    if overrides.ingest_delay_max is not None:
        config.ingest_delay_max = overrides.ingest_delay_max
    if overrides.strategies:
        config.strategies = list(overrides.strategies)
    if overrides.selection_limit is not None:
        config.selection_limit = overrides.selection_limit
    if overrides.gemini_model:
        config.gemini_model = overrides.gemini_model
    if overrides.user_agent:
        config.user_agent = overrides.user_agent
    if config.ingest_delay_max < config.ingest_delay_min:
        config.ingest_delay_max = config.ingest_delay_min


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Ignoring %s=%r; expected an integer.", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Ignoring %s=%r; expected a number.", name, raw)
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    values = [item.strip().lower() for item in raw.split(",") if item.strip()]
    return values or list(default)


def build_pipeline_config(overrides: Optional[ConfigOverrides] = None) -> PipelineConfig:
    """Build the effective configuration.

    Environment variables are read at call time so a late ``.env`` load or a
    monkeypatched environment is honoured.
    """
    config = PipelineConfig(
        concurrency=max(1, _env_int("DOCBINDER_CONCURRENCY", DEFAULT_CONCURRENCY)),
        fetch_timeout=_env_float("DOCBINDER_FETCH_TIMEOUT", FETCH_TIMEOUT_SECONDS),
        crawl_delay=_env_float("DOCBINDER_CRAWL_DELAY", CRAWL_DELAY_SECONDS),
        ingest_delay_min=_env_float(
            "DOCBINDER_INGEST_DELAY_MIN", INGEST_DELAY_RANGE[0]
        ),
        ingest_delay_max=_env_float(
            "DOCBINDER_INGEST_DELAY_MAX", INGEST_DELAY_RANGE[1]
        ),
        strategies=_env_list("DOCBINDER_STRATEGIES", list(DEFAULT_STRATEGIES)),
        gemini_model=os.getenv("DOCBINDER_GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        user_agent=os.getenv("DOCBINDER_USER_AGENT") or DEFAULT_USER_AGENT,
    )
    if overrides:
        _apply_overrides(config, overrides)
    elif config.ingest_delay_max < config.ingest_delay_min:
        config.ingest_delay_max = config.ingest_delay_min
    return config
