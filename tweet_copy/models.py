from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Sequence

from .fields import FieldResult, Found

MediaKind = Literal["image", "video", "animated_image"]


@dataclass(frozen=True)
class Author:
    handle: str
    display_name: str
    avatar_ref: str | None = None


@dataclass(frozen=True)
class MediaRef:
    kind: MediaKind
    primary_url: str
    preview_url: str | None = None
    alt_text: str | None = None


@dataclass(frozen=True)
class Metrics:
    likes: int = 0
    reshares: int = 0
    replies: int = 0


@dataclass(frozen=True)
class QuotedRecord:
    """A reduced post embedded inside another post."""

    id: str
    author: Author
    content: str
    url: str
    timestamp: datetime | None = None
    media: Sequence[MediaRef] = ()


@dataclass(frozen=True)
class Record:
    """A normalized post extracted from one rendered post node."""

    id: str
    author: Author
    content: str
    timestamp: datetime
    source_url: str
    metrics: Metrics = Metrics()
    media: Sequence[MediaRef] = ()
    is_thread_candidate: bool = False
    thread_position: int | None = None
    thread_group_id: str | None = None
    quoted: QuotedRecord | None = None


@dataclass(frozen=True)
class ThreadData:
    """An ordered, completeness-assessed group of Records by one author."""

    group_id: str
    records: Sequence[Record]
    declared_count: int
    author: Author
    started_at: datetime
    is_complete: bool

    def __post_init__(self) -> None:
        if not self.records:
            raise ValueError("ThreadData.records must be non-empty")


@dataclass(frozen=True)
class RawFields:
    """Per-field extraction results for one post node, before normalization."""

    id: FieldResult[str]
    display_name: FieldResult[str]
    handle: FieldResult[str]
    avatar: str | None
    content: FieldResult[str]
    timestamp: Found[datetime]
    metrics: Metrics = Metrics()
    media: Sequence[MediaRef] = ()
    has_connector: bool = False
    quoted: QuotedRecord | None = None
