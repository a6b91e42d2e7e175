from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable, Protocol

from bs4 import BeautifulSoup, Tag

from .dom import css_path, parse_html
from .errors import HostError
from .waiting import Clock, SystemClock, Unsubscribe


class HostPage(Protocol):
    """The rendered page the extractor reads from."""

    @property
    def page_url(self) -> str: ...

    @property
    def clock(self) -> Clock: ...

    def document(self) -> BeautifulSoup: ...

    def activate(self, node: Tag) -> None: ...

    def subscribe(self, callback: Callable[[], None]) -> Unsubscribe: ...


class _Subscribers:
    def __init__(self) -> None:
        self._callbacks: list[Callable[[], None]] = []

    def add(self, callback: Callable[[], None]) -> Unsubscribe:
        self._callbacks.append(callback)

        def _unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def notify(self) -> None:
        for cb in list(self._callbacks):
            cb()

    def __len__(self) -> int:
        return len(self._callbacks)


ActivateFn = Callable[["StaticHost", Tag], None]


class StaticHost:
    """
    In-memory page built from an HTML string (a saved page or a test fixture).

    `replace_html` and `mutate` change the tree and notify subscribers, which is
    how callers simulate content rendered after a "load more" activation.
    """

    def __init__(
        self,
        html: str,
        *,
        page_url: str = "",
        clock: Clock | None = None,
        on_activate: ActivateFn | None = None,
    ) -> None:
        self._soup = parse_html(html)
        self._page_url = page_url
        self._clock = clock or SystemClock()
        self._on_activate = on_activate
        self._subscribers = _Subscribers()
        self.activations: list[str] = []
        self.document_calls = 0

    @classmethod
    def from_file(cls, path: str | Path, *, page_url: str = "", clock: Clock | None = None) -> "StaticHost":
        p = Path(path)
        try:
            html = p.read_text(encoding="utf-8")
        except OSError as e:
            raise HostError(f"Failed to read HTML file: {p}") from e
        return cls(html, page_url=page_url, clock=clock)

    @property
    def page_url(self) -> str:
        return self._page_url

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def document(self) -> BeautifulSoup:
        self.document_calls += 1
        return self._soup

    def activate(self, node: Tag) -> None:
        self.activations.append(css_path(node))
        if self._on_activate is not None:
            self._on_activate(self, node)

    def subscribe(self, callback: Callable[[], None]) -> Unsubscribe:
        return self._subscribers.add(callback)

    def replace_html(self, html: str) -> None:
        self._soup = parse_html(html)
        self._subscribers.notify()

    def mutate(self, fn: Callable[[BeautifulSoup], None]) -> None:
        fn(self._soup)
        self._subscribers.notify()


_OBSERVER_SCRIPT = """
(name) => {
  if (window.__tweetCopyObserver) return;
  const observer = new MutationObserver(() => window[name]());
  observer.observe(document.body, {childList: true, subtree: true, characterData: true});
  window.__tweetCopyObserver = observer;
}
"""


class PageClock:
    """Clock whose sleep lets the browser keep running (and deliver events)."""

    def __init__(self, page: Any) -> None:
        self._page = page

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        self._page.wait_for_timeout(max(0.0, float(seconds)) * 1000)


class PlaywrightHost:
    """
    Live page driven through a Playwright sync `Page`.

    Every `document()` call snapshots the current DOM. DOM mutations reach
    subscribers through a MutationObserver bound to an exposed function.
    """

    def __init__(
        self,
        page: Any,
        *,
        binding_name: str = "__tweetCopyNotify",
        activate_timeout_seconds: float = 5.0,
    ) -> None:
        self._page = page
        self._activate_timeout_ms = max(0.0, float(activate_timeout_seconds)) * 1000
        self._binding_name = binding_name
        self._subscribers = _Subscribers()
        self._observing = False
        self._clock = PageClock(page)

    @property
    def page_url(self) -> str:
        return str(self._page.url or "")

    @property
    def clock(self) -> Clock:
        return self._clock

    def document(self) -> BeautifulSoup:
        try:
            html = self._page.content()
        except Exception as e:
            raise HostError(f"Failed to read page content: {e}") from e
        return parse_html(html)

    def activate(self, node: Tag) -> None:
        selector = css_path(node)
        try:
            self._page.click(selector, timeout=self._activate_timeout_ms)
        except Exception as e:
            raise HostError(f"Failed to activate {selector}: {e}") from e

    def subscribe(self, callback: Callable[[], None]) -> Unsubscribe:
        self._ensure_observer()
        return self._subscribers.add(callback)

    def _ensure_observer(self) -> None:
        if self._observing:
            return
        try:
            self._page.expose_function(self._binding_name, self._subscribers.notify)
            self._page.evaluate(_OBSERVER_SCRIPT, self._binding_name)
        except Exception as e:
            raise HostError(f"Failed to observe page mutations: {e}") from e
        self._observing = True
