from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Mapping, Sequence

# Every cascade is ordered most-specific first. The first pattern that matches wins,
# so generic patterns belong at the end.


@dataclass(frozen=True)
class SelectorSet:
    post_container: tuple[str, ...] = (
        'article[data-testid="tweet"]',
        '[data-testid="tweet"]',
        '[data-testid="cellInnerDiv"] article',
        'article[role="article"]',
    )
    status_link: tuple[str, ...] = ('a[href*="/status/"]',)
    display_name: tuple[str, ...] = (
        '[data-testid="User-Name"] a span span',
        '[data-testid="User-Name"] span span',
        '[data-testid="User-Name"] span:not([dir]):not([style*="color"])',
        '[data-testid="User-Name"] a span:first-child',
        '[data-testid="User-Names"] > div > div span',
        '[data-testid="User-Name"] span[style*="color: rgb(15, 20, 25)"]',
    )
    handle: tuple[str, ...] = (
        '[data-testid="User-Name"] div[dir="ltr"] > span',
        '[data-testid="User-Name"] span[dir="ltr"]',
        '[data-testid="User-Username"] span',
        '[data-testid="User-Names"] span[dir]',
        '[data-testid="User-Name"] a[tabindex="-1"] span',
        'a[href^="/"] span[dir="ltr"]',
    )
    profile_link: tuple[str, ...] = (
        '[data-testid="User-Name"] a[role="link"]',
        '[data-testid="User-Name"] a[href^="/"]',
    )
    avatar: tuple[str, ...] = (
        '[data-testid="Tweet-User-Avatar"] img',
        'img[src*="profile_images"]',
    )
    author_block: tuple[str, ...] = (
        '[data-testid="User-Name"]',
        '[data-testid="User-Names"]',
    )
    text: tuple[str, ...] = (
        '[data-testid="tweetText"]',
        'div[lang][dir]',
        '[lang] > span',
    )
    timestamp: tuple[str, ...] = (
        'time[datetime]',
        '[data-testid="Tweet-Timestamp"] time',
        'time',
    )
    replies: tuple[str, ...] = ('[data-testid="reply"]',)
    reshares: tuple[str, ...] = ('[data-testid="retweet"]', '[data-testid="unretweet"]')
    likes: tuple[str, ...] = ('[data-testid="like"]', '[data-testid="unlike"]')
    images: tuple[str, ...] = (
        '[data-testid="tweetPhoto"] img',
        'img[src*="pbs.twimg.com"]',
        'img[src*="media"]',
        '[role="img"] img',
        'div[aria-label*="Image"] img',
        'div[data-testid*="photo"] img',
        'img[src*="jpg"]',
        'img[src*="jpeg"]',
        'img[src*="png"]',
        'img[src*="webp"]',
    )
    videos: tuple[str, ...] = (
        '[data-testid="videoPlayer"] video',
        'video[src*="video"]',
        'div[data-testid*="video"] video',
        'video[poster]',
    )
    animated_images: tuple[str, ...] = (
        '[data-testid="gifPlayer"] video',
        'div[aria-label*="GIF"] video',
        'video[loop]',
    )
    animated_container: tuple[str, ...] = (
        '[data-testid="gifPlayer"]',
        'div[aria-label*="GIF"]',
    )
    quote_container: tuple[str, ...] = (
        '[role="link"][tabindex="0"][aria-labelledby]',
        '[data-testid="quoteTweet"] [role="link"]',
        'div[role="link"][tabindex="0"]',
        '[role="link"]',
    )
    thread_connector: tuple[str, ...] = (
        '[aria-label*="Show this thread"]',
        '[aria-label*="显示此线程"]',
        'div.r-1bimlpy',
    )
    load_more: tuple[str, ...] = (
        '[aria-label*="Show this thread"]',
        '[aria-label*="显示此线程"]',
    )

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def with_overrides(self, overrides: Mapping[str, Sequence[str]] | None) -> "SelectorSet":
        """
        Return a copy where each named cascade has the override patterns prepended.
        """
        if not overrides:
            return self

        known = set(self.names())
        updates: dict[str, tuple[str, ...]] = {}
        for name, patterns in overrides.items():
            if name not in known:
                raise KeyError(f"Unknown selector cascade: {name}")
            extra = tuple(p.strip() for p in patterns if (p or "").strip())
            existing = tuple(getattr(self, name))
            updates[name] = extra + tuple(p for p in existing if p not in extra)

        return replace(self, **updates)


DEFAULT_SELECTORS = SelectorSet()
