"""Tests for the BeautifulSoup node-tree helpers."""

from __future__ import annotations

from docbinder.markup import (
    any_of,
    attr_equals,
    class_mentions,
    find_all,
    find_first,
    first_match,
    has_attr,
    has_class,
    has_id,
    inner_markup,
    parse_markup,
    remove_all,
    serialize,
    tag_named,
)

HTML = """
<html><body>
  <div id="sidebar" class="left-Menu"><a href="/a">A</a></div>
  <section role="Navigation" data-docs-content="1"><p>x</p></section>
  <main class="prose wide"><p>Hello <b>world</b></p></main>
  <script>var a = 1;</script>
</body></html>
"""


def test_tag_named_is_case_insensitive():
    root = parse_markup(HTML)
    assert find_first(root, tag_named("MAIN")).name == "main"


def test_has_id_and_class():
    root = parse_markup(HTML)
    assert find_first(root, has_id("sidebar")) is not None
    assert find_first(root, has_class("prose")).name == "main"
    assert find_first(root, has_class("pro")) is None


def test_class_mentions_matches_hyphenated_words_in_id_and_class():
    root = parse_markup(HTML)
    assert find_first(root, class_mentions("menu")).get("id") == "sidebar"
    assert find_first(root, class_mentions("sidebar")).get("id") == "sidebar"
    assert find_first(root, class_mentions("idebar")) is None


def test_class_mentions_ignores_words_merely_containing_the_fragment():
    root = parse_markup(
        "<div class='canvas unavailable'>x</div>"
        "<div class='stock'>y</div>"
        "<div id='md_nav' class='breadcrumbs'>z</div>"
    )
    assert find_first(root, class_mentions("nav")).get("id") == "md_nav"
    assert find_first(root, class_mentions("toc")) is None
    assert find_first(root, class_mentions("breadcrumb")).get("id") == "md_nav"


def test_attr_equals_ignores_case():
    root = parse_markup(HTML)
    assert find_first(root, attr_equals("role", "navigation")).name == "section"


def test_has_attr_and_any_of():
    root = parse_markup(HTML)
    assert find_first(root, has_attr("data-docs-content")).name == "section"
    matches = find_all(root, any_of(tag_named("main"), has_id("sidebar")))
    assert [tag.name for tag in matches] == ["div", "main"]


def test_first_match_respects_priority():
    root = parse_markup(HTML)
    found = first_match(root, [tag_named("article"), tag_named("main"), tag_named("div")])
    assert found.name == "main"
    assert first_match(root, [tag_named("article")]) is None


def test_remove_all_counts_and_detaches():
    root = parse_markup(HTML)
    assert remove_all(root, tag_named("script")) == 1
    assert "var a" not in serialize(root)


def test_inner_markup():
    root = parse_markup("<main><p>Hi</p></main>")
    assert inner_markup(find_first(root, tag_named("main"))) == "<p>Hi</p>"


def test_empty_markup_parses():
    root = parse_markup("")
    assert find_first(root, tag_named("a")) is None
