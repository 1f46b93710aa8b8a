"""Small node-tree interface over BeautifulSoup.

Region lookups are expressed as predicate functions over tags rather than
CSS selector strings, so that priority lists in :mod:`docbinder.config` are
plain Python values.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

Predicate = Callable[[Tag], bool]
Node = Union[BeautifulSoup, Tag]

PARSER = "html.parser"
FORMATTER = "html5"

_WORD_SPLIT = re.compile(r"[-_]+")


def parse_markup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup or "", PARSER)


def _classes(tag: Tag) -> List[str]:
    value = tag.get("class") or []
    if isinstance(value, str):
        return value.split()
    return list(value)


def tag_named(*names: str) -> Predicate:
    wanted = {name.lower() for name in names}

    def predicate(tag: Tag) -> bool:
        return (tag.name or "").lower() in wanted

    return predicate


def has_id(value: str) -> Predicate:
    def predicate(tag: Tag) -> bool:
        return tag.get("id") == value

    return predicate


def has_class(value: str) -> Predicate:
    def predicate(tag: Tag) -> bool:
        return value in _classes(tag)

    return predicate


def class_mentions(word: str) -> Predicate:
    """Match tags whose id or a class names ``word``.

    Class values and the id are split on hyphens and underscores, so
    ``docs-sidebar`` and ``md_nav`` match while ``canvas`` does not contain
    the word ``nav``. A trailing plural ``s`` is accepted (``breadcrumbs``).
    """
    wanted = {word.lower(), word.lower() + "s"}

    def predicate(tag: Tag) -> bool:
        values = _classes(tag)
        tag_id = tag.get("id")
        if isinstance(tag_id, str):
            values.append(tag_id)
        return any(
            part in wanted
            for value in values
            for part in _WORD_SPLIT.split(value.lower())
        )

    return predicate


def attr_equals(attr: str, value: str) -> Predicate:
    def predicate(tag: Tag) -> bool:
        current = tag.get(attr)
        return isinstance(current, str) and current.lower() == value.lower()

    return predicate


def has_attr(attr: str) -> Predicate:
    def predicate(tag: Tag) -> bool:
        return tag.has_attr(attr)

    return predicate


def any_of(*predicates: Predicate) -> Predicate:
    def predicate(tag: Tag) -> bool:
        return any(check(tag) for check in predicates)

    return predicate


def find_first(root: Node, predicate: Predicate) -> Optional[Tag]:
    """First tag below ``root`` in document order matching ``predicate``."""
    found = root.find(predicate)
    return found if isinstance(found, Tag) else None


def find_all(root: Node, predicate: Predicate) -> List[Tag]:
    return [tag for tag in root.find_all(predicate) if isinstance(tag, Tag)]


def first_match(root: Node, predicates: Iterable[Predicate]) -> Optional[Tag]:
    """Try each predicate in priority order and return the first hit."""
    for predicate in predicates:
        found = find_first(root, predicate)
        if found is not None:
            return found
    return None


def remove_all(root: Node, predicate: Predicate) -> int:
    """Detach every matching tag from the tree, returning how many matched."""
    matches = find_all(root, predicate)
    for tag in matches:
        tag.extract()
    return len(matches)


def inner_markup(tag: Node) -> str:
    return tag.decode_contents(formatter=FORMATTER)


def serialize(root: Node) -> str:
    return root.decode(formatter=FORMATTER)
