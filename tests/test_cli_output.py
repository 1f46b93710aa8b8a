"""Tests for CLI and MCP output helpers."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from docbinder.cli_output import (
    build_bundle,
    doc_to_dict,
    format_catalog_markdown,
    render_document_html,
    url_to_filename,
    write_catalog,
    write_output,
)
from docbinder.document import DiscoveredLink, Document

SEED = "https://docs.example.com/"

LINKS = [
    DiscoveredLink(SEED, "Home / Entry"),
    DiscoveredLink("https://docs.example.com/install", "Install"),
]


def _docs():
    return [
        Document(url=SEED, title="Home", content="<p>Welcome</p>", status="success"),
        Document(
            url="https://docs.example.com/install",
            title="Install <beta>",
            content="",
            status="error",
            error_message="all 2 retrieval strategies failed",
        ),
    ]


def test_format_catalog_markdown():
    text = format_catalog_markdown(LINKS, SEED)
    assert text.splitlines()[:5] == [
        f"# Catalog: {SEED}",
        "_Found 2 links_",
        "",
        f"1. [Home / Entry]({SEED})",
        "2. [Install](https://docs.example.com/install)",
    ]


def test_doc_to_dict():
    data = doc_to_dict(_docs()[1])
    assert data["status"] == "error"
    assert data["error_message"].startswith("all 2")
    assert data["summary"] is None


def test_build_bundle():
    moment = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    bundle = build_bundle(_docs(), SEED, generated_at=moment, stats={"pages_visited": 1})
    assert bundle["source_host"] == "docs.example.com"
    assert bundle["generated_at"] == "2026-01-02 03:04:05 UTC"
    assert [d["url"] for d in bundle["documents"]] == [SEED, "https://docs.example.com/install"]
    assert bundle["summary"] == {"total": 2, "successful": 1, "failed": 1}
    assert bundle["stats"] == {"pages_visited": 1}


def test_url_to_filename():
    assert url_to_filename(SEED) == "docs_example_com_index"
    assert url_to_filename("http://x.com:8080/a/b/") == "x_com_8080_a_b"


def test_render_document_html_escapes_and_shows_errors():
    html = render_document_html(_docs()[1])
    assert "<title>Install &lt;beta&gt;</title>" in html
    assert 'class="error"' in html
    assert "retrieval strategies failed" in html


def test_write_catalog_json_to_file(tmp_path: Path):
    target = tmp_path / "out" / "catalog.json"
    write_catalog(LINKS, SEED, str(target), json_output=True)
    data = json.loads(target.read_text())
    assert data["seed_url"] == SEED
    assert data["links"][1] == {"href": "https://docs.example.com/install", "text": "Install"}


def test_write_catalog_stdout(capsys):
    write_catalog(LINKS, SEED, None, json_output=False)
    assert "# Catalog:" in capsys.readouterr().out


class TestWriteOutput:
    def test_json_stdout(self, capsys):
        write_output(_docs(), SEED, None, json_output=True)
        data = json.loads(capsys.readouterr().out)
        assert data["summary"]["failed"] == 1

    def test_json_into_directory(self, tmp_path: Path):
        write_output(_docs(), SEED, str(tmp_path), json_output=True)
        data = json.loads((tmp_path / "docbinder.json").read_text())
        assert len(data["documents"]) == 2

    def test_single_document_to_stdout(self, capsys):
        write_output(_docs()[:1], SEED, None, json_output=False)
        assert capsys.readouterr().out.strip() == "<p>Welcome</p>"

    def test_html_files_numbered_in_order(self, tmp_path: Path):
        out_dir = tmp_path / "docs"
        write_output(_docs(), SEED, str(out_dir), json_output=False)
        names = sorted(p.name for p in out_dir.iterdir())
        assert names == [
            "001_docs_example_com_index.html",
            "002_docs_example_com_install.html",
        ]
        assert "<p>Welcome</p>" in (out_dir / names[0]).read_text()
