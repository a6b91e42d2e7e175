from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .cascades import SelectorSet

NonNegativeInt = Annotated[int, Field(ge=0)]
PositiveFloat = Annotated[float, Field(gt=0)]


def _normalize_pattern_list(values: list[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()

    for item in values:
        pattern = (item or "").strip()
        if not pattern or pattern in seen:
            continue
        seen.add(pattern)
        out.append(pattern)

    if not out:
        raise ValueError("must contain at least one non-empty pattern")
    return out


class ExtractionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = "https://x.com"
    selector_overrides: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("base_url")
    @classmethod
    def _base_url_must_be_http(cls, v: str) -> str:
        url = (v or "").strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ValueError("must start with http:// or https://")
        return url

    @field_validator("selector_overrides")
    @classmethod
    def _known_cascades_only(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        known = set(SelectorSet.names())
        unknown = sorted(k for k in v if k not in known)
        if unknown:
            raise ValueError(f"unknown selector cascades: {', '.join(unknown)}")
        return {k: _normalize_pattern_list(patterns) for k, patterns in v.items()}


class ThreadsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    time_window_hours: PositiveFloat = 24.0
    position_proximity: NonNegativeInt = 2
    load_more_enabled: bool = True


class WaitingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_wait_seconds: PositiveFloat = 5.0
    poll_interval_seconds: PositiveFloat = 0.25
    stability_window_seconds: PositiveFloat = 1.0

    @model_validator(mode="after")
    def _interval_within_max_wait(self) -> "WaitingConfig":
        if self.poll_interval_seconds > self.max_wait_seconds:
            raise ValueError("poll_interval_seconds must be <= max_wait_seconds")
        return self


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    threads: ThreadsConfig = Field(default_factory=ThreadsConfig)
    waiting: WaitingConfig = Field(default_factory=WaitingConfig)
