"""Global pytest hooks for strict test-accounting guardrails, plus shared fixtures."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

import pytest

from docbinder.config import PipelineConfig
from docbinder.fetch import FetchError


@dataclass
class _TestAccounting:
    deselected: int = 0
    skipped: int = 0
    xfailed: int = 0
    xpassed: int = 0


_ACCOUNTING = _TestAccounting()


def pytest_deselected(items):  # pragma: no cover - pytest hook
    _ACCOUNTING.deselected += len(items)


def pytest_runtest_logreport(report):  # pragma: no cover - pytest hook
    if report.when not in {"setup", "call"}:
        return

    is_xfail = bool(getattr(report, "wasxfail", False))
    if is_xfail:
        if report.outcome == "skipped":
            _ACCOUNTING.xfailed += 1
        elif report.outcome == "passed":
            _ACCOUNTING.xpassed += 1
        return

    if report.outcome == "skipped":
        _ACCOUNTING.skipped += 1


def pytest_sessionfinish(session, exitstatus):  # pragma: no cover - pytest hook
    violations = []
    if _ACCOUNTING.deselected:
        violations.append(f"deselected={_ACCOUNTING.deselected}")
    if _ACCOUNTING.skipped:
        violations.append(f"skipped={_ACCOUNTING.skipped}")
    if _ACCOUNTING.xfailed:
        violations.append(f"xfailed={_ACCOUNTING.xfailed}")
    if _ACCOUNTING.xpassed:
        violations.append(f"xpassed={_ACCOUNTING.xpassed}")

    if not violations:
        return

    reporter = session.config.pluginmanager.get_plugin("terminalreporter")
    if reporter:
        reporter.write_sep(
            "=",
            "Strict guard failed: test accounting violations detected "
            f"({', '.join(violations)})",
        )
        reporter.write_line(
            "Hard guard requires zero skipped/deselected/xfail/xpass tests."
        )

    session.exitstatus = 1


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


_DOCBINDER_ENV = (
    "DOCBINDER_CONCURRENCY",
    "DOCBINDER_FETCH_TIMEOUT",
    "DOCBINDER_CRAWL_DELAY",
    "DOCBINDER_INGEST_DELAY_MIN",
    "DOCBINDER_INGEST_DELAY_MAX",
    "DOCBINDER_STRATEGIES",
    "DOCBINDER_USER_AGENT",
    "DOCBINDER_GEMINI_MODEL",
    "GEMINI_API_KEY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _DOCBINDER_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fast_config() -> PipelineConfig:
    """Config without politeness delays."""
    return PipelineConfig(crawl_delay=0.0, ingest_delay_min=0.0, ingest_delay_max=0.0)


Page = Union[str, Exception]


class FakeGateway:
    """In-memory stand-in for FetchGateway keyed by URL.

    Unknown URLs raise FetchError. ``on_fetch`` runs before every answer and
    may be async; ``delay`` simulates a slow relay.
    """

    def __init__(
        self,
        pages: Dict[str, Page],
        *,
        delay: float = 0.0,
        on_fetch: Optional[Callable[[str], object]] = None,
    ):
        self.pages = dict(pages)
        self.delay = delay
        self.on_fetch = on_fetch
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    async def fetch_markup(self, url: str) -> str:
        self.calls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.on_fetch is not None:
                outcome = self.on_fetch(url)
                if asyncio.iscoroutine(outcome):
                    await outcome
            if self.delay:
                await asyncio.sleep(self.delay)
            page = self.pages.get(url)
            if page is None:
                raise FetchError(f"no page for {url}", url=url)
            if isinstance(page, Exception):
                raise page
            return page
        finally:
            self.active -= 1


@pytest.fixture
def make_gateway() -> Callable[..., FakeGateway]:
    return FakeGateway


def nav_page(*hrefs: str, body: str = "", title: str = "") -> str:
    """Page whose links live in a <nav> region, one anchor per href."""
    anchors = "".join(f'<a href="{href}">{label}</a>' for href, label in _labels(hrefs))
    head = f"<head><title>{title}</title></head>" if title else ""
    return f"<html>{head}<body><nav>{anchors}</nav><main>{body}</main></body></html>"


def _labels(hrefs):
    for index, href in enumerate(hrefs, 1):
        yield href, f"Page {index}"


@pytest.fixture
def make_page() -> Callable[..., str]:
    return nav_page
