from __future__ import annotations

from typing import Iterable

from bs4 import Tag

from .cascades import DEFAULT_SELECTORS, SelectorSet
from .dom import attr, closest, query, query_each
from .models import MediaRef
from .run_log import RunLogger
from .urls import (
    high_quality_image_url,
    is_profile_image,
    looks_like_image_url,
    looks_like_video_url,
)

_PLAYER_CONTAINERS = ('[data-testid="videoPlayer"]', '[data-testid="gifPlayer"]')
_QUOTED_IMAGE_MARKER = "pbs.twimg.com/media"


def _image_src(img: Tag) -> str:
    src = attr(img, "src")
    if src:
        return src
    # srcset: "url 1x, url 2x"; the first candidate is enough.
    srcset = attr(img, "srcset")
    return srcset.split(",", 1)[0].strip().split(" ", 1)[0] if srcset else ""


def _video_src(video: Tag) -> str:
    src = attr(video, "src")
    if src:
        return src
    return attr(query(video, "source"), "src")


def _dedupe(refs: Iterable[MediaRef]) -> list[MediaRef]:
    out: list[MediaRef] = []
    seen: set[tuple[str, str]] = set()
    for ref in refs:
        key = (ref.kind, ref.primary_url)
        if key in seen:
            continue
        seen.add(key)
        out.append(ref)
    return out


def _images(
    node: Tag, selectors: SelectorSet, outside: Tag | None, logger: RunLogger | None
) -> Iterable[MediaRef]:
    for img in query_each(node, selectors.images, outside=outside, logger=logger):
        # Player posters are reported with their video.
        if closest(img, _PLAYER_CONTAINERS, logger=logger) is not None:
            continue
        src = _image_src(img)
        if not looks_like_image_url(src) or is_profile_image(src):
            continue
        yield MediaRef(
            kind="image",
            primary_url=high_quality_image_url(src),
            preview_url=src,
            alt_text=attr(img, "alt") or None,
        )


def _is_animated(video: Tag, selectors: SelectorSet, logger: RunLogger | None) -> bool:
    if video.has_attr("loop"):
        return True
    return closest(video, selectors.animated_container, logger=logger) is not None


def _videos(
    node: Tag, selectors: SelectorSet, outside: Tag | None, logger: RunLogger | None
) -> Iterable[MediaRef]:
    for video in query_each(node, selectors.videos, outside=outside, logger=logger):
        if _is_animated(video, selectors, logger):
            continue
        src = _video_src(video)
        if not looks_like_video_url(src):
            continue
        yield MediaRef(kind="video", primary_url=src, preview_url=attr(video, "poster") or None)


def _animated(
    node: Tag, selectors: SelectorSet, outside: Tag | None, logger: RunLogger | None
) -> Iterable[MediaRef]:
    for found in query_each(node, selectors.animated_images, outside=outside, logger=logger):
        video = found if found.name == "video" else query(found, "video")
        if video is None:
            continue
        src = _video_src(video)
        if not src:
            continue
        yield MediaRef(kind="animated_image", primary_url=src, preview_url=attr(video, "poster") or None)


def extract_media(
    node: Tag,
    *,
    selectors: SelectorSet = DEFAULT_SELECTORS,
    outside: Tag | None = None,
    logger: RunLogger | None = None,
) -> list[MediaRef]:
    """
    Collect images, videos and animated images attached to a post.

    Every pattern of each media cascade contributes (results are unioned, not
    first-match), duplicates are dropped, profile pictures are excluded and image
    URLs are rewritten to their original-size variant.
    """
    refs: list[MediaRef] = []
    refs.extend(_images(node, selectors, outside, logger))
    refs.extend(_videos(node, selectors, outside, logger))
    refs.extend(_animated(node, selectors, outside, logger))
    return _dedupe(refs)


def extract_quoted_media(container: Tag, *, logger: RunLogger | None = None) -> list[MediaRef]:
    """Media inside a quoted post; only uploaded photos and plain videos count."""
    refs: list[MediaRef] = []
    for img in query_each(container, ("img",), logger=logger):
        src = _image_src(img)
        if _QUOTED_IMAGE_MARKER not in src or is_profile_image(src):
            continue
        refs.append(
            MediaRef(
                kind="image",
                primary_url=high_quality_image_url(src),
                preview_url=src,
                alt_text=attr(img, "alt") or None,
            )
        )
    for video in query_each(container, ("video",), logger=logger):
        src = _video_src(video)
        if src:
            refs.append(MediaRef(kind="video", primary_url=src, preview_url=attr(video, "poster") or None))
    return _dedupe(refs)
