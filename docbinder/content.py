"""Main-content isolation and reference rewriting."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin

from .config import CHROME_REGIONS, CONTENT_REGIONS, STRIPPED_NODES
from .markup import (
    find_all,
    find_first,
    first_match,
    has_attr,
    inner_markup,
    parse_markup,
    remove_all,
    serialize,
    tag_named,
)
from .urls import has_scheme

LOGGER = logging.getLogger(__name__)

_REFERENCE_ATTRIBUTES = ("src", "href")


def _clean_text(text: str) -> str:
    return " ".join(text.split())


def isolate_main_content(markup: str) -> str:
    """Return the inner markup of the page's main content region.

    Scripts, styles, frames and ``noscript`` blocks are removed first. When no
    known content region exists the body is returned with navigation,
    headers, footers and sidebars stripped. Parser failures return the input
    unchanged.
    """
    try:
        root = parse_markup(markup)
        remove_all(root, STRIPPED_NODES)

        region = first_match(root, CONTENT_REGIONS)
        if region is not None:
            return inner_markup(region)

        body = find_first(root, tag_named("body"))
        scope = body if body is not None else root
        remove_all(scope, CHROME_REGIONS)
        return inner_markup(scope)
    except Exception as exc:
        LOGGER.warning("Content isolation failed, keeping original markup: %s", exc)
        return markup


def _rewrite_value(value: str, base_url: str) -> Optional[str]:
    target = value.strip()
    if not target or target.startswith("#") or has_scheme(target):
        return None
    return urljoin(base_url, target)


def rewrite_references(markup: str, base_url: str) -> str:
    """Make relative ``src`` and ``href`` attributes absolute.

    Root-relative, document-relative and protocol-relative values are
    resolved against ``base_url``. Values carrying a scheme, empty values and
    in-page fragments are left alone.
    """
    try:
        root = parse_markup(markup)
        for attribute in _REFERENCE_ATTRIBUTES:
            for tag in find_all(root, has_attr(attribute)):
                value = tag.get(attribute)
                if not isinstance(value, str):
                    continue
                rewritten = _rewrite_value(value, base_url)
                if rewritten is not None:
                    tag[attribute] = rewritten
        return serialize(root)
    except Exception as exc:
        LOGGER.warning("Reference rewrite failed for %s: %s", base_url, exc)
        return markup


def normalize_content(markup: str, base_url: str) -> str:
    """Isolate the main content of a page and make its references absolute."""
    return rewrite_references(isolate_main_content(markup), base_url)


def extract_title(markup: str) -> Optional[str]:
    """Page title from ``<title>``, falling back to the first ``<h1>``."""
    try:
        root = parse_markup(markup)
    except Exception as exc:
        LOGGER.debug("Could not read page title: %s", exc)
        return None
    for name in ("title", "h1"):
        tag = find_first(root, tag_named(name))
        if tag is not None:
            text = _clean_text(tag.get_text(" "))
            if text:
                return text
    return None


def html_to_text(markup: str) -> str:
    """Plain text of a markup fragment, one text run per line."""
    try:
        root = parse_markup(markup)
        remove_all(root, STRIPPED_NODES)
    except Exception as exc:
        LOGGER.warning("Could not convert markup to text: %s", exc)
        return markup
    return "\n".join(root.stripped_strings)
