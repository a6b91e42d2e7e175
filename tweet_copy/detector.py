from __future__ import annotations

import re

# Ordered: the first matching pattern decides the position.
_NUMBERING_PATTERNS = (
    re.compile(r"^(\d+)\s*/\s*(\d+)"),
    re.compile(r"^\((\d+)\s*/\s*(\d+)\)"),
    re.compile(r"^(\d+)\.(?!\d)"),
    re.compile(r"(\d+)\s*/\s*(\d+)$"),
    re.compile(r"🧵\s*(\d+)\s*/\s*(\d+)"),
)

THREAD_MARKERS = ("thread", "🧵", "⬇️")

CONTINUITY_MARKERS = (
    # zh
    "接上",
    "续上",
    "接下来",
    "然后",
    "另外",
    "此外",
    "最后",
    "总之",
    # en
    "continued",
    "also",
    "furthermore",
    "moreover",
    "finally",
    "in conclusion",
    # ja
    "そして",
    "また",
    "さらに",
    "最後に",
    # ko
    "그리고",
    "또한",
    "더욱이",
    "마지막으로",
)


def _numbering_match(content: str) -> re.Match[str] | None:
    text = (content or "").strip()
    if not text:
        return None
    for pattern in _NUMBERING_PATTERNS:
        m = pattern.search(text)
        if m:
            return m
    return None


def thread_position(content: str) -> int | None:
    """
    Explicit position declared by positional numbering ("2/5", "(2/5)", "2.", "🧵2/5").
    """
    m = _numbering_match(content)
    if m is None:
        return None
    value = int(m.group(1))
    return value if value > 0 else None


def has_numbering(content: str) -> bool:
    return thread_position(content) is not None


def has_thread_marker(content: str) -> bool:
    lowered = (content or "").casefold()
    return any(marker in lowered for marker in THREAD_MARKERS)


def has_continuity_marker(content: str) -> bool:
    lowered = (content or "").casefold()
    return any(marker.casefold() in lowered for marker in CONTINUITY_MARKERS)


def is_thread_candidate(content: str, *, has_connector: bool = False) -> bool:
    """
    Permissive check for "this post may belong to a multi-post sequence".

    False positives are expected; reconstruction re-checks membership with
    stronger signals.
    """
    if has_connector:
        return True
    return has_numbering(content) or has_thread_marker(content) or has_continuity_marker(content)
