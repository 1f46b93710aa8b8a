"""Output and formatting helpers for CLI commands and the MCP server."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from html import escape
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .document import DiscoveredLink, Document
from .urls import hostname_of


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Timestamp in ISO-like UTC form."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def link_to_dict(link: DiscoveredLink) -> Dict[str, str]:
    return {"href": link.href, "text": link.text}


def format_catalog_markdown(links: List[DiscoveredLink], seed_url: str) -> str:
    """Format a discovered link catalog as a markdown list.

    Example output:
    # Catalog: https://docs.example.com/
    _Found 2 links_

    1. [Home / Entry](https://docs.example.com/)
    2. [Install](https://docs.example.com/install)
    """
    lines = [f"# Catalog: {seed_url}", f"_Found {len(links)} links_", ""]
    for index, link in enumerate(links, 1):
        lines.append(f"{index}. [{link.text}]({link.href})")
    lines.append("")
    return "\n".join(lines)


def doc_to_dict(doc: Document) -> Dict[str, Any]:
    """Convert document to JSON-serializable dict."""
    return {
        "url": doc.url,
        "title": doc.title,
        "status": doc.status,
        "content": doc.content,
        "summary": doc.summary,
        "error_message": doc.error_message,
    }


def build_bundle(
    documents: List[Document],
    seed_url: str,
    *,
    generated_at: Optional[datetime] = None,
    stats: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Assemble the ordered documents plus the metadata a renderer needs."""
    bundle: Dict[str, Any] = {
        "source_host": hostname_of(seed_url),
        "seed_url": seed_url,
        "generated_at": format_timestamp(generated_at),
        "documents": [doc_to_dict(doc) for doc in documents],
        "summary": {
            "total": len(documents),
            "successful": sum(1 for d in documents if d.status == "success"),
            "failed": sum(1 for d in documents if d.status == "error"),
        },
    }
    if stats:
        bundle["stats"] = stats
    return bundle


def url_to_filename(url: str) -> str:
    """Convert URL to a safe filename."""
    parsed = urlparse(url)
    path = parsed.path.strip("/").replace("/", "_") or "index"
    host = parsed.netloc.replace(":", "_").replace(".", "_")
    return f"{host}_{path}"[:100]


def render_document_html(doc: Document) -> str:
    """Standalone HTML page for one document."""
    parts = [
        "<!DOCTYPE html>",
        '<html><head><meta charset="utf-8">',
        f"<title>{escape(doc.title)}</title></head><body>",
        f'<p class="source"><a href="{escape(doc.url)}">{escape(doc.url)}</a></p>',
    ]
    if doc.status == "error":
        message = doc.error_message or "Failed to fetch this page."
        parts.append(f'<p class="error">{escape(message)}</p>')
    if doc.summary:
        parts.append(f'<pre class="summary">{escape(doc.summary)}</pre>')
    parts.append(doc.content)
    parts.append("</body></html>")
    return "\n".join(parts)


def write_catalog(
    links: List[DiscoveredLink],
    seed_url: str,
    output: Optional[str],
    json_output: bool,
) -> None:
    """Print the catalog or write it to a file."""
    if json_output:
        text = json.dumps(
            {"seed_url": seed_url, "links": [link_to_dict(link) for link in links]},
            indent=2,
            ensure_ascii=False,
        )
    else:
        text = format_catalog_markdown(links, seed_url)

    if output is None:
        print(text)
        return

    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logging.info("Wrote %d links to %s", len(links), path)


def write_output(
    docs: List[Document],
    seed_url: str,
    output: Optional[str],
    json_output: bool,
    stats: Optional[Dict[str, Any]] = None,
) -> None:
    """Write documents to output destination.

    JSON output is a single bundle (stdout, or ``output`` as a file path).
    Otherwise one ``.html`` file per document is written into the ``output``
    directory; a single document without ``output`` goes to stdout.
    """
    if json_output:
        text = json.dumps(
            build_bundle(docs, seed_url, stats=stats), indent=2, ensure_ascii=False
        )
        if output is None:
            print(text)
            return
        path = Path(output)
        if output.endswith("/") or path.is_dir():
            path = path / "docbinder.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        logging.info("Wrote %d documents to %s", len(docs), path)
        return

    if len(docs) == 1 and output is None:
        print(docs[0].content)
        return

    out_dir = Path(output) if output else Path(".")
    out_dir.mkdir(parents=True, exist_ok=True)
    for index, doc in enumerate(docs, 1):
        filename = f"{index:03d}_{url_to_filename(doc.url)}.html"
        path = out_dir / filename
        path.write_text(render_document_html(doc), encoding="utf-8")
        logging.info("Wrote %s", path)
