"""URL parsing, resolution and normalisation helpers."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit

_SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")
_SKIPPED_PREFIXES = ("#", "javascript:", "mailto:")


def _valid_port(parts: SplitResult) -> bool:
    """False when the authority carries a non-numeric or out-of-range port."""
    try:
        parts.port
    except ValueError:
        return False
    return True


class SeedParseError(ValueError):
    """Raised when the seed URL is not an absolute http(s) URL."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


def parse_seed(url: str) -> str:
    """Validate a seed URL and return its normalised form.

    Raises:
        SeedParseError: If the value is empty, not http(s), has no host or
            carries a malformed port.
    """
    candidate = (url or "").strip()
    if not candidate:
        raise SeedParseError("Seed URL is empty", url=url or "")
    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname
    except ValueError as exc:
        raise SeedParseError(f"Invalid seed URL: {candidate}", url=candidate) from exc
    if parts.scheme.lower() not in ("http", "https"):
        raise SeedParseError(
            f"Seed URL must use http or https: {candidate}", url=candidate
        )
    if not hostname:
        raise SeedParseError(f"Seed URL has no hostname: {candidate}", url=candidate)
    if not _valid_port(parts):
        raise SeedParseError(f"Seed URL has an invalid port: {candidate}", url=candidate)
    return normalize_url(candidate)


def normalize_url(url: str) -> str:
    """Return the catalog identity of ``url``.

    The fragment is dropped, scheme and host are lower-cased, an empty path
    becomes ``/`` and a trailing slash is collapsed unless the path is the
    root. Applying the function twice gives the same result as applying it
    once.
    """
    parts = urlsplit(url.strip())
    path = parts.path or "/"
    while len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, parts.query, "")
    )


def hostname_of(url: str) -> str:
    """Lower-cased hostname of ``url`` without port, or an empty string.

    URLs whose port is not a valid number have no usable host.
    """
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return ""
    if not _valid_port(parts):
        return ""
    return hostname or ""


def same_host(url: str, other: str) -> bool:
    host = hostname_of(url)
    return bool(host) and host == hostname_of(other)


def has_scheme(value: str) -> bool:
    return bool(_SCHEME_PATTERN.match(value))


def resolve_href(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve an anchor target against ``base_url``.

    Returns ``None`` for empty, fragment-only, ``javascript:`` and
    ``mailto:`` targets, and for targets with a malformed port.
    Protocol-relative, root-relative and document-relative targets become
    absolute.
    """
    if not href:
        return None
    target = href.strip()
    if not target or target.lower().startswith(_SKIPPED_PREFIXES):
        return None
    try:
        resolved = urljoin(base_url, target)
        parts = urlsplit(resolved)
    except ValueError:
        return None
    return resolved if _valid_port(parts) else None
