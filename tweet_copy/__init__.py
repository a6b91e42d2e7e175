from __future__ import annotations

from .cache import RecordCache
from .config import config_sha256, load_config
from .config_schema import AppConfig
from .detector import is_thread_candidate, thread_position
from .errors import ConfigError, ExtractionError, HostError
from .extractors import ExtractionContext
from .host import HostPage, PlaywrightHost, StaticHost
from .models import Author, MediaRef, Metrics, QuotedRecord, Record, ThreadData
from .normalize import normalize
from .parser import RecordParser
from .reconstruct import ThreadDetection, ThreadReconstructor

__all__ = [
    "AppConfig",
    "Author",
    "ConfigError",
    "ExtractionContext",
    "ExtractionError",
    "HostError",
    "HostPage",
    "MediaRef",
    "Metrics",
    "PlaywrightHost",
    "QuotedRecord",
    "Record",
    "RecordCache",
    "RecordParser",
    "StaticHost",
    "ThreadData",
    "ThreadDetection",
    "ThreadReconstructor",
    "config_sha256",
    "is_thread_candidate",
    "load_config",
    "normalize",
    "thread_position",
]
