from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

import dateparser

_RELATIVE_SHORT_RE = re.compile(r"^(\d+)\s*([smhdw])$", re.IGNORECASE)
_RELATIVE_LONG_RE = re.compile(r"(\d+)\s*(second|minute|hour|day|week)s?\s*ago", re.IGNORECASE)
_NOW_WORDS = frozenset({"now", "just now", "刚刚", "今"})

_UNIT_SECONDS = {
    "s": 1,
    "second": 1,
    "m": 60,
    "minute": 60,
    "h": 3600,
    "hour": 3600,
    "d": 86400,
    "day": 86400,
    "w": 604800,
    "week": 604800,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso(value: str) -> datetime | None:
    """Parse a machine-readable ISO-8601 timestamp (as found in `datetime` attributes)."""
    s = (value or "").strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(s))
    except ValueError:
        return None


def parse_relative(text: str, *, now: datetime) -> datetime | None:
    s = (text or "").strip()
    if not s:
        return None

    if s.casefold() in _NOW_WORDS:
        return _as_utc(now)

    m = _RELATIVE_SHORT_RE.match(s) or _RELATIVE_LONG_RE.search(s)
    if not m:
        return None

    amount = int(m.group(1))
    unit = m.group(2).lower()
    return _as_utc(now) - timedelta(seconds=amount * _UNIT_SECONDS[unit])


def parse_human(text: str, *, now: datetime) -> datetime | None:
    """
    Parse a human-readable, possibly localized date such as "3:45 PM · Oct 12, 2025"
    or "2025年10月12日".
    """
    s = " ".join((text or "").replace("·", " ").split())
    if not s:
        return None

    base = _as_utc(now).replace(tzinfo=None)
    try:
        parsed = dateparser.parse(
            s,
            settings={
                "RELATIVE_BASE": base,
                "TIMEZONE": "UTC",
                "TO_TIMEZONE": "UTC",
                "RETURN_AS_TIMEZONE_AWARE": True,
                "PREFER_DATES_FROM": "past",
            },
        )
    except Exception:  # dateparser raises assorted types on odd input
        return None

    if parsed is None:
        return None
    return _as_utc(parsed)


def parse_timestamp_text(text: str, *, now: datetime) -> datetime | None:
    """
    Best-effort parse of visible timestamp text: relative forms first, then ISO,
    then locale-aware free text.
    """
    return parse_relative(text, now=now) or parse_iso(text) or parse_human(text, now=now)
