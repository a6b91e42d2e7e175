from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta

from bs4 import Tag

from .config_schema import AppConfig, ThreadsConfig, WaitingConfig
from .dom import query
from .errors import HostError
from .host import HostPage
from .membership import (
    assemble_thread,
    assess_completeness,
    is_same_thread,
    select_from_position,
    single_record_thread,
)
from .models import Record, ThreadData
from .parser import RecordParser
from .run_log import RunLogger
from .waiting import WaitPolicy, wait_for_settle


@dataclass(frozen=True)
class ThreadDetection:
    is_part_of_thread: bool
    thread: ThreadData | None = None
    position: int | None = None


def _wait_policy(cfg: WaitingConfig) -> WaitPolicy:
    return WaitPolicy(
        max_wait_seconds=cfg.max_wait_seconds,
        poll_interval_seconds=cfg.poll_interval_seconds,
        stability_window_seconds=cfg.stability_window_seconds,
    )


class ThreadReconstructor:
    """
    Rebuild the thread a post belongs to from whatever posts the page shows.

    seed -> discover (optionally after one "load more" activation) -> filter ->
    order -> assess. Posts that are not thread candidates short-circuit to a
    single-record thread without scanning the page.
    """

    def __init__(
        self,
        host: HostPage,
        *,
        parser: RecordParser | None = None,
        config: AppConfig | None = None,
        logger: RunLogger | None = None,
    ) -> None:
        cfg = config or AppConfig()
        self._host = host
        self._logger = logger
        self._threads: ThreadsConfig = cfg.threads
        self._policy = _wait_policy(cfg.waiting)
        self._parser = parser or RecordParser.from_config(cfg, page_url=host.page_url, logger=logger)

    @property
    def parser(self) -> RecordParser:
        return self._parser

    def reconstruct(self, node: Tag | None) -> ThreadData | None:
        seed = self._seed(node)
        if seed is None:
            return None

        if not seed.is_thread_candidate:
            return single_record_thread(seed)

        window = timedelta(hours=self._threads.time_window_hours)
        members = [
            r
            for r in self._discover()
            if r.id != seed.id
            and is_same_thread(r, seed, time_window=window, proximity=self._threads.position_proximity)
        ]
        thread = assemble_thread(seed, members)

        if self._logger is not None:
            self._logger.info(
                "thread_reconstructed",
                url=self._host.page_url,
                group_id=thread.group_id,
                records=len(thread.records),
                is_complete=thread.is_complete,
            )
        return thread

    def reconstruct_from_position(self, node: Tag | None, position: int) -> ThreadData | None:
        thread = self.reconstruct(node)
        if thread is None:
            return None

        kept = select_from_position(thread.records, position)
        if not kept:
            return None
        return replace(
            thread,
            records=tuple(kept),
            declared_count=len(kept),
            started_at=min(r.timestamp for r in kept),
            is_complete=assess_completeness(kept),
        )

    def detect(self, node: Tag | None) -> ThreadDetection:
        seed = self._seed(node)
        if seed is None or not seed.is_thread_candidate:
            return ThreadDetection(is_part_of_thread=False)

        thread = self.reconstruct(node)
        if thread is None:
            return ThreadDetection(is_part_of_thread=False)

        position = seed.thread_position
        if position is None:
            position = next((i for i, r in enumerate(thread.records, start=1) if r.id == seed.id), None)

        return ThreadDetection(
            is_part_of_thread=len(thread.records) > 1,
            thread=thread,
            position=position,
        )

    def _seed(self, node: Tag | None) -> Record | None:
        try:
            return self._parser.parse_record(node)
        except Exception as e:
            if self._logger is not None:
                self._logger.exception("candidate_dropped", exc=e, level="WARN", url=self._host.page_url, seed=True)
            return None

    def _scan(self) -> list[Record]:
        root = self._host.document()
        return self._parser.parse_many(self._parser.find_post_nodes(root))

    def _discover(self) -> list[Record]:
        records = self._scan()
        if not self._threads.load_more_enabled:
            return records

        try:
            if not self._load_more():
                return records
            more = self._scan()
        except HostError as e:
            if self._logger is not None:
                self._logger.exception("load_more_failed", exc=e, level="WARN", url=self._host.page_url)
            return records

        seen = {r.id for r in records}
        records.extend(r for r in more if r.id not in seen)
        return records

    def _load_more_node(self) -> Tag | None:
        selectors = self._parser.context.selectors.load_more
        return query(self._host.document(), selectors, logger=self._logger)

    def _load_more(self) -> bool:
        button = self._load_more_node()
        if button is None:
            return False

        self._host.activate(button)
        if self._logger is not None:
            self._logger.info("load_more_activated", url=self._host.page_url)

        result = wait_for_settle(
            self._host,
            is_done=lambda: self._load_more_node() is None,
            measure=lambda: len(self._host.document().get_text()),
            clock=self._host.clock,
            policy=self._policy,
        )

        if self._logger is not None:
            self._logger.info(
                "load_more_timeout" if result.timed_out else "load_more_settled",
                url=self._host.page_url,
                status=result.status,
                waited_seconds=round(result.waited_seconds, 3),
                changes_seen=result.changes_seen,
            )
        return True
