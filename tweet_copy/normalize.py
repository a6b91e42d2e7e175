from __future__ import annotations

from .detector import is_thread_candidate, thread_position
from .fields import Exhausted, Found
from .models import Author, RawFields, Record
from .run_log import RunLogger
from .urls import DEFAULT_BASE_URL, build_status_url


def _missing(raw: RawFields) -> dict[str, tuple[str, ...]]:
    out: dict[str, tuple[str, ...]] = {}
    for result in (raw.id, raw.handle, raw.display_name, raw.content):
        if isinstance(result, Exhausted):
            out[result.field] = result.tried
    return out


def thread_group_for(handle: str, raw: RawFields) -> str:
    # One group per author per calendar day (UTC).
    return f"{handle}_{raw.timestamp.value.date().isoformat()}"


def normalize(
    raw: RawFields,
    *,
    base_url: str = DEFAULT_BASE_URL,
    logger: RunLogger | None = None,
) -> Record | None:
    """
    Turn per-field extraction results into a Record, or None.

    A Record is produced only when id, author handle, author display name and
    content all resolved. Anything else is rejected and the unresolved fields are
    logged with the strategies that were tried.
    """
    status_id, handle_r, name_r, content_r = raw.id, raw.handle, raw.display_name, raw.content
    if not (
        isinstance(status_id, Found)
        and isinstance(handle_r, Found)
        and isinstance(name_r, Found)
        and isinstance(content_r, Found)
    ):
        missing = _missing(raw)
        if logger is not None:
            logger.info(
                "record_rejected",
                missing=sorted(missing),
                tried={k: list(v) for k, v in missing.items()},
                status_id=raw.id.value if isinstance(raw.id, Found) else None,
            )
        return None

    handle = handle_r.value
    content = content_r.value
    position = thread_position(content)

    return Record(
        id=status_id.value,
        author=Author(
            handle=handle,
            display_name=name_r.value.strip(),
            avatar_ref=raw.avatar,
        ),
        content=content,
        timestamp=raw.timestamp.value,
        source_url=build_status_url(handle, status_id.value, base_url=base_url),
        metrics=raw.metrics,
        media=tuple(raw.media),
        is_thread_candidate=is_thread_candidate(content, has_connector=raw.has_connector),
        thread_position=position,
        thread_group_id=thread_group_for(handle, raw) if position is not None else None,
        quoted=raw.quoted,
    )
