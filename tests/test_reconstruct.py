from __future__ import annotations

import io
import json
import unittest
from datetime import datetime, timedelta, timezone

from html_fixtures import load_more_html, page_html, post_html, time_html

from tweet_copy.config_schema import AppConfig
from tweet_copy.errors import HostError
from tweet_copy.host import StaticHost
from tweet_copy.reconstruct import ThreadReconstructor
from tweet_copy.run_log import RunLogger
from tweet_copy.waiting import ManualClock

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _at(minutes: float) -> str:
    ts = T0 + timedelta(minutes=minutes)
    return time_html(iso=ts.strftime("%Y-%m-%dT%H:%M:%S.000Z"))


def _post(status_id: str, text: str, *, minutes: float = 0, handle: str = "alice") -> str:
    return post_html(status_id=status_id, handle=handle, name=handle.title(), text=text, time_markup=_at(minutes))


def _events(buf: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in buf.getvalue().splitlines()]


class _Harness:
    def __init__(self, html: str, *, on_activate=None, config: AppConfig | None = None) -> None:
        self.clock = ManualClock()
        self.buf = io.StringIO()
        self.log = RunLogger.to_stream(self.buf)
        self.host = StaticHost(html, page_url="https://x.com/alice/status/2", clock=self.clock, on_activate=on_activate)
        self.reconstructor = ThreadReconstructor(self.host, config=config, logger=self.log)

    def node(self, status_id: str):
        return self.reconstructor.parser.find_by_id(self.host.document(), status_id)


class TestReconstruct(unittest.TestCase):
    def test_complete_thread_in_order(self) -> None:
        h = _Harness(
            page_html(
                _post("3", "3/3 the end", minutes=20),
                _post("1", "1/3 it begins", minutes=0),
                _post("9", "1/2 someone else", minutes=5, handle="bob"),
                _post("2", "2/3 the middle", minutes=10),
            )
        )

        thread = h.reconstructor.reconstruct(h.node("2"))

        self.assertIsNotNone(thread)
        assert thread is not None
        self.assertEqual([r.id for r in thread.records], ["1", "2", "3"])
        self.assertTrue(thread.is_complete)
        self.assertEqual(thread.group_id, "thread_alice_2")
        self.assertEqual(thread.declared_count, 3)
        self.assertEqual(thread.author.handle, "alice")
        self.assertEqual(thread.started_at, T0)

        done = [e for e in _events(h.buf) if e["event"] == "thread_reconstructed"]
        self.assertEqual(done[0]["data"]["records"], 3)

    def test_gap_makes_thread_incomplete(self) -> None:
        h = _Harness(page_html(_post("1", "1/3 start"), _post("3", "3/3 end", minutes=10)))

        thread = h.reconstructor.reconstruct(h.node("1"))

        assert thread is not None
        self.assertEqual([r.id for r in thread.records], ["1", "3"])
        self.assertFalse(thread.is_complete)

    def test_other_authors_and_old_posts_are_filtered(self) -> None:
        h = _Harness(
            page_html(
                _post("1", "1/3 start"),
                _post("2", "2/3 two days later", minutes=48 * 60),
                _post("7", "2/3 impostor", minutes=5, handle="mallory"),
                _post("8", "Lunch was great", minutes=6),
            )
        )

        thread = h.reconstructor.reconstruct(h.node("1"))

        assert thread is not None
        self.assertEqual([r.id for r in thread.records], ["1"])

    def test_non_candidate_seed_skips_page_scan(self) -> None:
        h = _Harness(page_html(_post("5", "Lunch was great"), _post("6", "1/2 thread", minutes=1)))
        node = h.node("5")
        h.host.document_calls = 0

        thread = h.reconstructor.reconstruct(node)

        assert thread is not None
        self.assertEqual([r.id for r in thread.records], ["5"])
        self.assertEqual(thread.declared_count, 1)
        self.assertTrue(thread.is_complete)
        self.assertEqual(h.host.document_calls, 0)

    def test_unparsable_seed_returns_none(self) -> None:
        h = _Harness(page_html(_post("1", "1/2 a")))
        self.assertIsNone(h.reconstructor.reconstruct(h.host.document().select_one("main")))
        self.assertIsNone(h.reconstructor.reconstruct(None))

    def test_load_more_reveals_the_rest(self) -> None:
        first = page_html(_post("1", "1/3 start"), _post("2", "2/3 middle", minutes=5), tail=load_more_html())
        full = page_html(
            _post("1", "1/3 start"),
            _post("2", "2/3 middle", minutes=5),
            _post("3", "3/3 end", minutes=9),
        )

        def _on_activate(host: StaticHost, node) -> None:
            h.clock.call_later(0.4, lambda: host.replace_html(full))

        h = _Harness(first, on_activate=_on_activate)

        thread = h.reconstructor.reconstruct(h.node("2"))

        assert thread is not None
        self.assertEqual([r.id for r in thread.records], ["1", "2", "3"])
        self.assertTrue(thread.is_complete)
        self.assertEqual(len(h.host.activations), 1)
        self.assertEqual(h.host.subscriber_count, 0)

        names = [e["event"] for e in _events(h.buf)]
        self.assertIn("load_more_activated", names)
        settled = [e for e in _events(h.buf) if e["event"] == "load_more_settled"]
        self.assertEqual(settled[0]["data"]["status"], "affordance_gone")

    def test_load_more_timeout_is_not_fatal(self) -> None:
        page = page_html(_post("1", "1/2 start"), _post("2", "2/2 end", minutes=5), tail=load_more_html())

        def _keep_spinning(host: StaticHost, node) -> None:
            def _tick(n: int = 0) -> None:
                host.mutate(lambda soup: soup.select_one("main").append(soup.new_tag("div")))
                if n < 100:
                    h.clock.call_later(0.2, lambda: _tick(n + 1))

            h.clock.call_later(0.1, _tick)

        h = _Harness(page, on_activate=_keep_spinning)

        thread = h.reconstructor.reconstruct(h.node("1"))

        assert thread is not None
        self.assertEqual([r.id for r in thread.records], ["1", "2"])
        timeouts = [e for e in _events(h.buf) if e["event"] == "load_more_timeout"]
        self.assertEqual(len(timeouts), 1)
        self.assertEqual(timeouts[0]["data"]["status"], "timed_out")

    def test_page_navigation_during_load_more_keeps_first_scan(self) -> None:
        page = page_html(_post("1", "1/2 start"), _post("2", "2/2 end", minutes=5), tail=load_more_html())
        h = _Harness(page)
        node = h.node("1")

        def _navigating_document():
            if h.host.activations:
                raise HostError("Unable to retrieve content because the page is navigating")
            return StaticHost.document(h.host)

        h.host.document = _navigating_document

        thread = h.reconstructor.reconstruct(node)

        assert thread is not None
        self.assertEqual([r.id for r in thread.records], ["1", "2"])
        self.assertEqual(len(h.host.activations), 1)
        self.assertEqual(h.host.subscriber_count, 0)
        failed = [e for e in _events(h.buf) if e["event"] == "load_more_failed"]
        self.assertEqual(len(failed), 1)
        self.assertEqual(failed[0]["level"], "WARN")
        self.assertEqual(failed[0]["data"]["error"]["type"], "HostError")

    def test_load_more_can_be_disabled(self) -> None:
        cfg = AppConfig.model_validate({"threads": {"load_more_enabled": False}})
        page = page_html(_post("1", "1/2 start"), _post("2", "2/2 end", minutes=5), tail=load_more_html())
        h = _Harness(page, config=cfg)

        thread = h.reconstructor.reconstruct(h.node("1"))

        assert thread is not None
        self.assertEqual(len(thread.records), 2)
        self.assertEqual(h.host.activations, [])


class TestPositionAndDetection(unittest.TestCase):
    def _page(self) -> str:
        return page_html(
            _post("1", "1/3 start"),
            _post("2", "2/3 middle", minutes=5),
            _post("3", "3/3 end", minutes=9),
        )

    def test_reconstruct_from_position(self) -> None:
        h = _Harness(self._page())

        thread = h.reconstructor.reconstruct_from_position(h.node("1"), 2)

        assert thread is not None
        self.assertEqual([r.id for r in thread.records], ["2", "3"])
        self.assertFalse(thread.is_complete)
        self.assertEqual(thread.group_id, "thread_alice_1")
        self.assertEqual(thread.group_id, h.reconstructor.reconstruct(h.node("1")).group_id)
        self.assertEqual(thread.declared_count, 2)
        self.assertEqual(thread.started_at, T0 + timedelta(minutes=5))
        self.assertIsNone(h.reconstructor.reconstruct_from_position(h.node("1"), 7))

    def test_detect(self) -> None:
        h = _Harness(self._page())

        detection = h.reconstructor.detect(h.node("2"))

        self.assertTrue(detection.is_part_of_thread)
        self.assertEqual(detection.position, 2)
        assert detection.thread is not None
        self.assertEqual(len(detection.thread.records), 3)

    def test_detect_plain_post(self) -> None:
        h = _Harness(page_html(_post("5", "Lunch was great")))
        detection = h.reconstructor.detect(h.node("5"))
        self.assertFalse(detection.is_part_of_thread)
        self.assertIsNone(detection.thread)


if __name__ == "__main__":
    unittest.main()
