from __future__ import annotations

from typing import Sequence, Union

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from .run_log import RunLogger

Patterns = Union[str, Sequence[str]]

# Raised by soupsieve for selectors it cannot parse or does not implement.
_UNSUPPORTED = (SelectorSyntaxError, NotImplementedError)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _as_list(patterns: Patterns) -> list[str]:
    if isinstance(patterns, str):
        return [patterns]
    return [p for p in patterns if isinstance(p, str) and p.strip()]


def _skip(logger: RunLogger | None, pattern: str, exc: BaseException) -> None:
    if logger is not None:
        logger.warning(
            "selector_unsupported",
            pattern=pattern,
            error=f"{type(exc).__name__}: {exc}",
        )


def query(
    root: Tag | None,
    patterns: Patterns,
    *,
    outside: Tag | None = None,
    logger: RunLogger | None = None,
) -> Tag | None:
    """
    Return the first node matched by the first pattern that matches anything.

    Patterns are tried strictly in order. A pattern the selector engine rejects is
    skipped (and logged), never fatal. Nodes inside `outside` (e.g. an embedded
    quoted post) are ignored.
    """
    found = query_all(root, patterns, outside=outside, logger=logger)
    return found[0] if found else None


def query_all(
    root: Tag | None,
    patterns: Patterns,
    *,
    outside: Tag | None = None,
    logger: RunLogger | None = None,
) -> list[Tag]:
    """
    Return all nodes matched by the first pattern yielding a non-empty result.
    """
    if root is None:
        return []

    for pattern in _as_list(patterns):
        try:
            found = root.select(pattern)
        except _UNSUPPORTED as e:
            _skip(logger, pattern, e)
            continue
        if outside is not None:
            found = [n for n in found if not is_inside(n, outside)]
        if found:
            return list(found)
    return []


def query_each(
    root: Tag | None,
    patterns: Patterns,
    *,
    outside: Tag | None = None,
    logger: RunLogger | None = None,
) -> list[Tag]:
    """
    Union of every pattern's matches, in pattern order, without repeating a node.

    Used where later patterns add coverage rather than replace earlier ones.
    """
    if root is None:
        return []

    out: list[Tag] = []
    seen: set[int] = set()
    for pattern in _as_list(patterns):
        try:
            found = root.select(pattern)
        except _UNSUPPORTED as e:
            _skip(logger, pattern, e)
            continue
        for node in found:
            if id(node) in seen:
                continue
            if outside is not None and is_inside(node, outside):
                continue
            seen.add(id(node))
            out.append(node)
    return out


def matches(node: Tag | None, patterns: Patterns, *, logger: RunLogger | None = None) -> bool:
    if node is None:
        return False

    for pattern in _as_list(patterns):
        try:
            if node.css.match(pattern):
                return True
        except _UNSUPPORTED as e:
            _skip(logger, pattern, e)
    return False


def closest(node: Tag | None, patterns: Patterns, *, logger: RunLogger | None = None) -> Tag | None:
    if node is None:
        return None

    for pattern in _as_list(patterns):
        try:
            found = node.css.closest(pattern)
        except _UNSUPPORTED as e:
            _skip(logger, pattern, e)
            continue
        if found is not None:
            return found
    return None


def text_of(node: Tag | None) -> str:
    if node is None:
        return ""
    return node.get_text().strip()


def attr(node: Tag | None, name: str) -> str:
    if node is None:
        return ""
    value = node.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(str(v) for v in value).strip()
    return str(value).strip()


def is_inside(node: Tag, container: Tag | None) -> bool:
    if container is None:
        return False
    if node is container:
        return True
    return any(parent is container for parent in node.parents)


def css_path(node: Tag) -> str:
    """
    Build an `nth-of-type` selector path that addresses `node` from the document root.
    """
    parts: list[str] = []
    current: Tag | None = node

    while isinstance(current, Tag) and not isinstance(current, BeautifulSoup):
        parent = current.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            parts.append(current.name)
            break

        same = [c for c in parent.find_all(current.name, recursive=False)]
        index = next((i for i, c in enumerate(same, start=1) if c is current), 1)
        parts.append(f"{current.name}:nth-of-type({index})")
        current = parent

    return " > ".join(reversed(parts))
