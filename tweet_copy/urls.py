from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

DEFAULT_BASE_URL = "https://x.com"

_STATUS_ID_RE = re.compile(r"/status/(\d+)")
_HANDLE_RE = re.compile(r"^[A-Za-z0-9_]+$")

# First path segments that name app sections rather than accounts.
RESERVED_PATHS = frozenset(
    {
        "home",
        "explore",
        "notifications",
        "messages",
        "bookmarks",
        "lists",
        "profile",
        "settings",
        "search",
        "compose",
        "i",
    }
)

_TWITTER_IMAGE_HOSTS = ("pbs.twimg.com", "abs.twimg.com")
_QUALITY_PARAMS = ("name", "format")

IMAGE_URL_MARKERS = (
    "pbs.twimg.com",
    "abs.twimg.com",
    "ton.twitter.com",
    "/media/",
    "format=jpg",
    "format=jpeg",
    "format=png",
    "format=webp",
    ".jpg",
    ".jpeg",
    ".png",
    ".webp",
)

VIDEO_URL_MARKERS = (
    "video.twimg.com",
    "pbs.twimg.com",
    "ton.twitter.com",
    "/video/",
    ".mp4",
    ".webm",
    ".mov",
    "video",
)

PROFILE_IMAGE_MARKERS = (
    "profile_images",
    "profile_image",
    "profile_banners",
    "/profile/",
    "default_profile",
    "profile_normal",
    "profile_bigger",
)


def extract_status_id(url: str) -> str | None:
    m = _STATUS_ID_RE.search(url or "")
    return m.group(1) if m else None


def is_valid_handle(value: str) -> bool:
    return bool(_HANDLE_RE.fullmatch(value or ""))


def handle_from_path(url_or_path: str) -> str | None:
    """
    Return the account handle named by the first path segment, if it is one.
    """
    value = (url_or_path or "").strip()
    if not value:
        return None

    try:
        path = urlsplit(value).path if "://" in value else value.split("?", 1)[0]
    except ValueError:
        return None

    segs = [s for s in path.split("/") if s]
    if not segs:
        return None

    first = segs[0]
    if first.casefold() in RESERVED_PATHS or first.startswith("_"):
        return None
    if not is_valid_handle(first):
        return None
    return first


def is_status_page(url: str) -> bool:
    return extract_status_id(url) is not None


def build_status_url(handle: str, status_id: str, *, base_url: str = DEFAULT_BASE_URL) -> str:
    base = (base_url or DEFAULT_BASE_URL).rstrip("/")
    return f"{base}/{handle}/status/{status_id}"


def is_short_link(href: str) -> bool:
    return "t.co/" in (href or "")


def is_profile_image(url: str) -> bool:
    return any(marker in (url or "") for marker in PROFILE_IMAGE_MARKERS)


def looks_like_image_url(url: str) -> bool:
    u = url or ""
    if len(u) < 10:
        return False
    return any(marker in u for marker in IMAGE_URL_MARKERS)


def looks_like_video_url(url: str) -> bool:
    u = url or ""
    if len(u) < 10:
        return False
    return any(marker in u for marker in VIDEO_URL_MARKERS)


def high_quality_image_url(url: str) -> str:
    """
    Rewrite a Twitter media URL to request the original-size variant.

    Size/format query parameters are dropped and `format=jpg&name=orig` appended.
    Non-Twitter URLs are returned unchanged.
    """
    value = (url or "").strip()
    if not any(host in value for host in _TWITTER_IMAGE_HOSTS):
        return value

    try:
        parts = urlsplit(value)
    except ValueError:
        return value

    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in _QUALITY_PARAMS]
    kept.extend([("format", "jpg"), ("name", "orig")])
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), parts.fragment))
