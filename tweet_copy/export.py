from __future__ import annotations

import re
from dataclasses import asdict
from datetime import datetime
from typing import Any, Literal, Sequence

from .dates import utc_now
from .models import Record, ThreadData

PostType = Literal["original", "quote"]

_LINK_RE = re.compile(r"https?://")


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def record_to_dict(record: Record) -> dict[str, Any]:
    return _jsonable(asdict(record))


def thread_to_dict(thread: ThreadData) -> dict[str, Any]:
    return _jsonable(asdict(thread))


def post_type(record: Record) -> PostType:
    return "quote" if record.quoted is not None else "original"


def flatten_for_export(
    record: Record,
    *,
    tags: Sequence[str] = (),
    category: str | None = None,
    saved_at: datetime | None = None,
) -> dict[str, Any]:
    """
    Flat payload for note-taking/export collaborators: one level of nesting at most,
    media reduced to presence flags.
    """
    kinds = {m.kind for m in record.media}
    return {
        "id": record.id,
        "url": record.source_url,
        "content": record.content,
        "author": record.author.display_name,
        "username": record.author.handle,
        "publish_time": record.timestamp.isoformat(),
        "post_type": post_type(record),
        "media": {
            "has_images": "image" in kinds,
            "has_video": bool(kinds & {"video", "animated_image"}),
            "has_links": bool(_LINK_RE.search(record.content)),
        },
        "stats": {
            "likes": record.metrics.likes,
            "reshares": record.metrics.reshares,
            "replies": record.metrics.replies,
        },
        "tags": [t.strip() for t in tags if (t or "").strip()],
        "category": category,
        "saved_at": (saved_at or utc_now()).isoformat(),
    }
