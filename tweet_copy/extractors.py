from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from bs4 import Comment, NavigableString, Tag

from .cascades import DEFAULT_SELECTORS, SelectorSet
from .dates import parse_human, parse_iso, parse_timestamp_text, utc_now
from .dom import attr, closest, query, query_all, text_of
from .fields import Exhausted, Found, first_found
from .media import extract_media, extract_quoted_media
from .models import Author, Metrics, QuotedRecord, RawFields
from .run_log import RunLogger
from .urls import (
    DEFAULT_BASE_URL,
    build_status_url,
    extract_status_id,
    handle_from_path,
    is_short_link,
    is_status_page,
    is_valid_handle,
)

_RELATIVE_TIME_RE = re.compile(r"^\d+[smhd]$")
_BARE_NUMBER_RE = re.compile(r"^\d+$")
_COMPACT_NUMBER_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMB])?$", re.IGNORECASE)
_LABEL_NUMBER_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?\s*[KMB]?)\b", re.IGNORECASE)
_MULTIPLIERS = {"": 1, "K": 1_000, "M": 1_000_000, "B": 1_000_000_000}

_FALLBACK_NAME_MIN = 2
_FALLBACK_NAME_MAX = 49


@dataclass(frozen=True)
class ExtractionContext:
    """Everything the extractors need besides the post node itself."""

    page_url: str = ""
    base_url: str = DEFAULT_BASE_URL
    selectors: SelectorSet = DEFAULT_SELECTORS
    now: Callable[[], datetime] = field(default=utc_now, compare=False)
    logger: RunLogger | None = field(default=None, compare=False)


def parse_compact_number(text: str) -> int:
    """
    Parse counters such as "12", "1,234", "1.2K", "3M", "4B". Anything else is 0.
    """
    clean = (text or "").replace(",", "").strip()
    m = _COMPACT_NUMBER_RE.match(clean)
    if not m:
        return 0
    unit = (m.group(2) or "").upper()
    return int(round(float(m.group(1)) * _MULTIPLIERS[unit]))


def _plausible_display_name(text: str) -> bool:
    s = (text or "").strip()
    if not s:
        return False
    if s.startswith("@"):
        return False
    if "·" in s:
        return False
    if _RELATIVE_TIME_RE.match(s) or _BARE_NUMBER_RE.match(s):
        return False
    return True


def _fallback_display_name(text: str) -> bool:
    s = (text or "").strip()
    return _FALLBACK_NAME_MIN <= len(s) <= _FALLBACK_NAME_MAX and _plausible_display_name(s)


def _handle_from_text(text: str) -> str | None:
    s = (text or "").strip()
    if not s.startswith("@"):
        return None
    s = s[1:].strip()
    return s if is_valid_handle(s) else None


def find_quote_container(node: Tag, ctx: ExtractionContext) -> Tag | None:
    """
    Locate an embedded quoted post: a link-role container holding both a text
    container and an author block. Reply context lacks the text container.
    """
    for pattern in ctx.selectors.quote_container:
        for candidate in query_all(node, pattern, logger=ctx.logger):
            if candidate is node:
                continue
            if attr(candidate, "role") != "link":
                continue
            if query(candidate, ctx.selectors.text, logger=ctx.logger) is None:
                continue
            if query(candidate, ctx.selectors.author_block, logger=ctx.logger) is None:
                continue
            return candidate
    return None


def extract_status_id_field(
    node: Tag, ctx: ExtractionContext, *, outside: Tag | None = None
) -> Found[str] | Exhausted:
    def _from_links() -> str | None:
        for link in query_all(node, ctx.selectors.status_link, outside=outside, logger=ctx.logger):
            status_id = extract_status_id(attr(link, "href"))
            if status_id:
                return status_id
        return None

    def _from_ancestor() -> str | None:
        link = closest(node, ctx.selectors.status_link, logger=ctx.logger)
        return extract_status_id(attr(link, "href")) if link is not None else None

    def _from_page() -> str | None:
        return extract_status_id(ctx.page_url) if is_status_page(ctx.page_url) else None

    return first_found(
        "id",
        [
            ("status_link", _from_links),
            ("ancestor_link", _from_ancestor),
            ("page_url", _from_page),
            ("data_attribute", lambda: attr(node, "data-tweet-id") or None),
        ],
    )


def extract_display_name(
    node: Tag,
    ctx: ExtractionContext,
    *,
    outside: Tag | None = None,
    last_resort: bool = True,
) -> Found[str] | Exhausted:
    strategies = [
        (pattern, lambda p=pattern: text_of(query(node, p, outside=outside, logger=ctx.logger)) or None)
        for pattern in ctx.selectors.display_name
    ]
    result = first_found("author.display_name", strategies, accept=_plausible_display_name)
    if isinstance(result, Found) or not last_resort:
        return result

    def _scan_leaves() -> str | None:
        for span in query_all(node, "span", outside=outside, logger=ctx.logger):
            if span.find(True) is not None:
                continue
            text = text_of(span)
            if _fallback_display_name(text):
                return text
        return None

    fallback = first_found("author.display_name", [("leaf_scan", _scan_leaves)])
    if isinstance(fallback, Found):
        return fallback
    return Exhausted(field="author.display_name", tried=result.tried + fallback.tried)


def extract_handle(
    node: Tag,
    ctx: ExtractionContext,
    *,
    outside: Tag | None = None,
    last_resort: bool = True,
) -> Found[str] | Exhausted:
    strategies = [
        (pattern, lambda p=pattern: _handle_from_text(text_of(query(node, p, outside=outside, logger=ctx.logger))))
        for pattern in ctx.selectors.handle
    ]

    def _from_profile_link() -> str | None:
        link = query(node, ctx.selectors.profile_link, outside=outside, logger=ctx.logger)
        return handle_from_path(attr(link, "href")) if link is not None else None

    strategies.append(("profile_link", _from_profile_link))
    if last_resort:
        strategies.append(("page_url", lambda: handle_from_path(ctx.page_url)))

    return first_found("author.handle", strategies, accept=is_valid_handle)


def extract_avatar(node: Tag, ctx: ExtractionContext, *, outside: Tag | None = None) -> str | None:
    img = query(node, ctx.selectors.avatar, outside=outside, logger=ctx.logger)
    return attr(img, "src") or None


def render_text(container: Tag) -> str:
    """
    Rebuild the visible text of a content container.

    External links become `[text](href)`; shortened (t.co) and in-app links keep
    their plain text; inline images (emoji) contribute their alt text.
    """
    parts: list[str] = []

    def _walk(node: Tag) -> None:
        for child in node.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                parts.append(str(child))
                continue
            if not isinstance(child, Tag):
                continue

            if child.name == "a":
                parts.append(_render_link(child))
            elif child.name == "img":
                parts.append(attr(child, "alt") or attr(child, "title"))
            elif child.name == "br":
                parts.append("\n")
            else:
                _walk(child)

    _walk(container)
    return "".join(parts).strip()


def _render_link(link: Tag) -> str:
    text = link.get_text()
    href = attr(link, "href")
    if not href or is_short_link(href) or not href.startswith("http"):
        return text
    if not text.strip() or text.strip() == href:
        return href
    return f"[{text}]({href})"


def extract_content(
    node: Tag,
    ctx: ExtractionContext,
    *,
    outside: Tag | None = None,
    has_media: bool = False,
) -> Found[str] | Exhausted:
    def _from_container() -> str | None:
        container = query(node, ctx.selectors.text, outside=outside, logger=ctx.logger)
        return render_text(container) if container is not None else None

    return first_found(
        "content",
        [
            ("text_container", _from_container),
            ("media_only", lambda: "" if has_media else None),
        ],
    )


def _time_node(node: Tag, ctx: ExtractionContext, outside: Tag | None) -> Tag | None:
    return query(node, ctx.selectors.timestamp, outside=outside, logger=ctx.logger)


def _time_strategies(time_node: Tag | None, ctx: ExtractionContext) -> list:
    return [
        ("datetime_attr", lambda: parse_iso(attr(time_node, "datetime"))),
        ("title_attr", lambda: parse_human(attr(time_node, "title"), now=ctx.now())),
        ("visible_text", lambda: parse_timestamp_text(text_of(time_node), now=ctx.now())),
    ]


def extract_timestamp(node: Tag, ctx: ExtractionContext, *, outside: Tag | None = None) -> Found[datetime]:
    """Never fails: the last strategy is the current time."""
    time_node = _time_node(node, ctx, outside)
    strategies = _time_strategies(time_node, ctx) if time_node is not None else []
    strategies.append(("now", ctx.now))
    result = first_found("timestamp", strategies)
    if isinstance(result, Found):
        return result
    return Found(ctx.now(), "now")


def _count(button: Tag | None) -> int:
    if button is None:
        return 0
    value = parse_compact_number(text_of(button))
    if value:
        return value
    m = _LABEL_NUMBER_RE.search(attr(button, "aria-label"))
    return parse_compact_number(m.group(1)) if m else 0


def extract_metrics(node: Tag, ctx: ExtractionContext, *, outside: Tag | None = None) -> Metrics:
    s = ctx.selectors
    return Metrics(
        likes=_count(query(node, s.likes, outside=outside, logger=ctx.logger)),
        reshares=_count(query(node, s.reshares, outside=outside, logger=ctx.logger)),
        replies=_count(query(node, s.replies, outside=outside, logger=ctx.logger)),
    )


def has_thread_connector(node: Tag, ctx: ExtractionContext, *, outside: Tag | None = None) -> bool:
    return query(node, ctx.selectors.thread_connector, outside=outside, logger=ctx.logger) is not None


def extract_quoted(container: Tag, ctx: ExtractionContext) -> QuotedRecord | None:
    """
    Reduced extraction scoped to an embedded quoted post. Returns None when the
    quote lacks an author handle or text.
    """
    status_id = extract_status_id(attr(container, "href"))
    if not status_id:
        for link in query_all(container, ctx.selectors.status_link, logger=ctx.logger):
            status_id = extract_status_id(attr(link, "href"))
            if status_id:
                break

    handle = extract_handle(container, ctx, last_resort=False)
    name = extract_display_name(container, ctx, last_resort=False)
    if not isinstance(handle, Found) or not isinstance(name, Found):
        return None

    text_node = query(container, ctx.selectors.text, logger=ctx.logger)
    content = render_text(text_node) if text_node is not None else ""
    if not content:
        return None

    timestamp = None
    time_node = _time_node(container, ctx, None)
    if time_node is not None:
        found = first_found("quoted.timestamp", _time_strategies(time_node, ctx))
        if isinstance(found, Found):
            timestamp = found.value

    return QuotedRecord(
        id=status_id or "",
        author=Author(
            handle=handle.value,
            display_name=name.value,
            avatar_ref=extract_avatar(container, ctx),
        ),
        content=content,
        url=build_status_url(handle.value, status_id, base_url=ctx.base_url) if status_id else "",
        timestamp=timestamp,
        media=tuple(extract_quoted_media(container, logger=ctx.logger)),
    )


def extract_raw_fields(node: Tag, ctx: ExtractionContext) -> RawFields:
    """Run every field extractor over one post node."""
    quote = find_quote_container(node, ctx)
    media = tuple(extract_media(node, selectors=ctx.selectors, outside=quote, logger=ctx.logger))

    return RawFields(
        id=extract_status_id_field(node, ctx, outside=quote),
        display_name=extract_display_name(node, ctx, outside=quote),
        handle=extract_handle(node, ctx, outside=quote),
        avatar=extract_avatar(node, ctx, outside=quote),
        content=extract_content(node, ctx, outside=quote, has_media=bool(media)),
        timestamp=extract_timestamp(node, ctx, outside=quote),
        metrics=extract_metrics(node, ctx, outside=quote),
        media=media,
        has_connector=has_thread_connector(node, ctx, outside=quote),
        quoted=extract_quoted(quote, ctx) if quote is not None else None,
    )
