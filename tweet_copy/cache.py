from __future__ import annotations

from dataclasses import dataclass

from .models import Record


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int


class RecordCache:
    """
    In-memory Record store keyed by post id.

    Lives as long as its owner (a RecordParser); nothing is persisted.
    """

    def __init__(self) -> None:
        self._records: dict[str, Record] = {}
        self._hits = 0
        self._misses = 0

    def get(self, record_id: str) -> Record | None:
        record = self._records.get(record_id)
        if record is None:
            self._misses += 1
        else:
            self._hits += 1
        return record

    def set(self, record_id: str, record: Record) -> None:
        self._records[record_id] = record

    def clear(self) -> None:
        self._records.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> CacheStats:
        return CacheStats(size=len(self._records), hits=self._hits, misses=self._misses)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records
