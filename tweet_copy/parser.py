from __future__ import annotations

from typing import Iterable

from bs4 import Tag

from .cache import RecordCache
from .cascades import DEFAULT_SELECTORS
from .config_schema import AppConfig
from .dom import closest, matches, query_all
from .extractors import (
    ExtractionContext,
    extract_raw_fields,
    extract_status_id_field,
    find_quote_container,
)
from .fields import Found
from .models import Record
from .normalize import normalize
from .run_log import RunLogger
from .urls import extract_status_id, is_status_page


class RecordParser:
    """
    Parse rendered post nodes into Records, memoizing by post id.

    A node whose id is already cached is answered from the cache without running
    any field extractor.
    """

    def __init__(
        self,
        *,
        context: ExtractionContext | None = None,
        cache: RecordCache | None = None,
    ) -> None:
        self._ctx = context or ExtractionContext()
        self._cache = cache if cache is not None else RecordCache()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        page_url: str = "",
        logger: RunLogger | None = None,
    ) -> "RecordParser":
        selectors = DEFAULT_SELECTORS.with_overrides(config.extraction.selector_overrides)
        ctx = ExtractionContext(
            page_url=page_url,
            base_url=config.extraction.base_url,
            selectors=selectors,
            logger=logger,
        )
        return cls(context=ctx)

    @property
    def context(self) -> ExtractionContext:
        return self._ctx

    @property
    def cache(self) -> RecordCache:
        return self._cache

    @property
    def logger(self) -> RunLogger | None:
        return self._ctx.logger

    def post_root(self, node: Tag | None) -> Tag | None:
        """The post container `node` is, or sits inside of."""
        if node is None:
            return None
        posts = self._ctx.selectors.post_container
        if matches(node, posts, logger=self.logger):
            return node
        return closest(node, posts, logger=self.logger)

    def is_post_node(self, node: Tag | None) -> bool:
        return self.post_root(node) is not None

    def record_id(self, node: Tag) -> str | None:
        quote = find_quote_container(node, self._ctx)
        result = extract_status_id_field(node, self._ctx, outside=quote)
        return result.value if isinstance(result, Found) else None

    def parse_record(self, node: Tag | None) -> Record | None:
        node = self.post_root(node)
        if node is None:
            return None

        record_id = self.record_id(node)
        if record_id:
            cached = self._cache.get(record_id)
            if cached is not None:
                return cached

        raw = extract_raw_fields(node, self._ctx)
        record = normalize(raw, base_url=self._ctx.base_url, logger=self.logger)
        if record is not None:
            self._cache.set(record.id, record)
        return record

    def parse_many(self, nodes: Iterable[Tag]) -> list[Record]:
        """
        Parse each node independently; one failing node never affects the others.
        """
        out: list[Record] = []
        for idx, node in enumerate(nodes):
            try:
                record = self.parse_record(node)
            except Exception as e:
                if self.logger is not None:
                    self.logger.exception("candidate_dropped", exc=e, level="WARN", index=idx)
                continue
            if record is not None:
                out.append(record)
        return out

    def ingest(self, nodes: Iterable[Tag]) -> int:
        """Parse nodes into the cache and return how many new Records were added."""
        before = len(self._cache)
        self.parse_many(nodes)
        return len(self._cache) - before

    def find_post_nodes(self, root: Tag | None) -> list[Tag]:
        """
        Outermost post containers under `root`, in document order.
        """
        found = query_all(root, self._ctx.selectors.post_container, logger=self.logger)
        out: list[Tag] = []
        kept: set[int] = set()
        for node in found:
            if any(id(parent) in kept for parent in node.parents):
                continue
            kept.add(id(node))
            out.append(node)
        return out

    def find_by_id(self, root: Tag | None, record_id: str) -> Tag | None:
        for node in self.find_post_nodes(root):
            if self.record_id(node) == record_id:
                return node
        return None

    def find_main_post(self, root: Tag | None) -> Tag | None:
        """
        The post a status page is about: the node carrying the page's id, else the
        first post on the page.
        """
        page_url = self._ctx.page_url
        if is_status_page(page_url):
            status_id = extract_status_id(page_url)
            if status_id:
                node = self.find_by_id(root, status_id)
                if node is not None:
                    return node
        nodes = self.find_post_nodes(root)
        return nodes[0] if nodes else None

    def clear_cache(self) -> None:
        self._cache.clear()
