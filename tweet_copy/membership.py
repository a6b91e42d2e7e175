from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Sequence

from .detector import has_continuity_marker
from .models import Record, ThreadData

DEFAULT_TIME_WINDOW = timedelta(hours=24)
DEFAULT_POSITION_PROXIMITY = 2


@dataclass(frozen=True)
class ThreadStats:
    total_records: int
    total_characters: int
    average_length: int
    has_media: bool
    time_span: timedelta


def is_same_thread(
    candidate: Record,
    seed: Record,
    *,
    time_window: timedelta = DEFAULT_TIME_WINDOW,
    proximity: int = DEFAULT_POSITION_PROXIMITY,
) -> bool:
    """
    Decide whether `candidate` continues the sequence `seed` belongs to.

    Hard requirements: same author, timestamps within `time_window`, and the
    candidate itself flagged as a thread candidate. Then any one of: matching
    group id, explicit positions no more than `proximity` apart, or a continuity
    marker in the candidate's text.
    """
    if candidate.author.handle != seed.author.handle:
        return False
    if abs(candidate.timestamp - seed.timestamp) > time_window:
        return False
    if not candidate.is_thread_candidate:
        return False

    if candidate.thread_group_id and candidate.thread_group_id == seed.thread_group_id:
        return True

    if candidate.thread_position is not None and seed.thread_position is not None:
        if abs(candidate.thread_position - seed.thread_position) <= proximity:
            return True

    return has_continuity_marker(candidate.content)


def order_records(records: Iterable[Record]) -> list[Record]:
    """
    Explicit positions when every record has one, chronological otherwise.
    """
    items = list(records)
    if items and all(r.thread_position is not None for r in items):
        return sorted(items, key=lambda r: (r.thread_position, r.timestamp))
    return sorted(items, key=lambda r: r.timestamp)


def assess_completeness(records: Sequence[Record]) -> bool:
    """
    With two or more explicit positions the thread is complete only when they run
    1..n without gaps. Fewer than two positions cannot prove a gap.
    """
    positions = sorted(r.thread_position for r in records if r.thread_position is not None)
    if len(positions) < 2:
        return True
    if positions[0] != 1:
        return False
    return all(b - a <= 1 for a, b in zip(positions, positions[1:]))


def group_id_for(seed: Record) -> str:
    return f"thread_{seed.author.handle}_{seed.id}"


def assemble_thread(seed: Record, members: Iterable[Record]) -> ThreadData:
    """Order and assess `seed` plus its accepted members, dropping repeated ids."""
    records: list[Record] = []
    seen: set[str] = set()
    for record in (seed, *members):
        if record.id in seen:
            continue
        seen.add(record.id)
        records.append(record)

    ordered = order_records(records)
    return ThreadData(
        group_id=group_id_for(seed),
        records=tuple(ordered),
        declared_count=len(ordered),
        author=seed.author,
        started_at=min(r.timestamp for r in ordered),
        is_complete=assess_completeness(ordered),
    )


def single_record_thread(seed: Record) -> ThreadData:
    return ThreadData(
        group_id=group_id_for(seed),
        records=(seed,),
        declared_count=1,
        author=seed.author,
        started_at=seed.timestamp,
        is_complete=True,
    )


def select_from_position(records: Sequence[Record], position: int) -> list[Record]:
    """
    Keep the part of a thread that starts at `position`.

    Numbered records are kept when their position is at or after it. Unnumbered
    records are kept when they are not older than the record at `position`.
    """
    start = next((r for r in records if r.thread_position == position), None)
    if start is None and position == 1 and records:
        start = min(records, key=lambda r: r.timestamp)

    out: list[Record] = []
    for record in records:
        if record.thread_position is not None:
            if record.thread_position >= position:
                out.append(record)
        elif start is None or record.timestamp >= start.timestamp:
            out.append(record)
    return out


def thread_stats(thread: ThreadData) -> ThreadStats:
    total_chars = sum(len(r.content) for r in thread.records)
    count = len(thread.records)
    stamps = [r.timestamp for r in thread.records]
    return ThreadStats(
        total_records=count,
        total_characters=total_chars,
        average_length=round(total_chars / count) if count else 0,
        has_media=any(r.media for r in thread.records),
        time_span=max(stamps) - min(stamps),
    )
