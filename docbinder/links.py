"""Navigation link discovery."""

from __future__ import annotations

import logging
from typing import Dict, List

from .config import NAV_LINK_THRESHOLD, NAVIGATION_REGIONS, PLACEHOLDER_LABEL
from .document import DiscoveredLink
from .markup import Node, find_all, parse_markup, tag_named
from .urls import hostname_of, normalize_url, resolve_href

LOGGER = logging.getLogger(__name__)

_ANCHOR = tag_named("a")


def _navigation_scope(root: Node) -> Node:
    """Pick the first navigation region dense enough to be a sitemap."""
    for predicate in NAVIGATION_REGIONS:
        for candidate in find_all(root, predicate):
            if len(find_all(candidate, _ANCHOR)) > NAV_LINK_THRESHOLD:
                return candidate
    return root


def _clean_label(text: str) -> str:
    return " ".join(text.split()) or PLACEHOLDER_LABEL


def extract_links(markup: str, base_url: str) -> List[DiscoveredLink]:
    """Return deduplicated same-host links found in ``markup``.

    Links come from the densest navigation region when one exists, otherwise
    from the whole document. Order follows the document; for duplicate
    targets the first label wins.
    """
    base_host = hostname_of(base_url)
    if not base_host:
        return []

    try:
        root = parse_markup(markup)
        anchors = find_all(_navigation_scope(root), _ANCHOR)
    except Exception as exc:
        LOGGER.warning("Could not parse links from %s: %s", base_url, exc)
        return []

    found: Dict[str, DiscoveredLink] = {}
    for anchor in anchors:
        raw_href = anchor.get("href")
        absolute = resolve_href(raw_href if isinstance(raw_href, str) else None, base_url)
        if absolute is None or hostname_of(absolute) != base_host:
            continue
        href = normalize_url(absolute)
        if href in found:
            continue
        found[href] = DiscoveredLink(
            href=href, text=_clean_label(anchor.get_text(" "))
        )

    LOGGER.debug("Extracted %d links from %s", len(found), base_url)
    return list(found.values())
