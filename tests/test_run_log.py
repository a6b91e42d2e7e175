from __future__ import annotations

import io
import json
import tempfile
import unittest
from pathlib import Path

from tweet_copy.run_log import RunLogger


class TestRunLogger(unittest.TestCase):
    def test_stream_lines_are_json(self) -> None:
        buf = io.StringIO()
        log = RunLogger(stream=buf, session_id="s1")

        log.info("thread_reconstructed", url="https://x.com/a/status/1", records=3)
        log.close()

        obj = json.loads(buf.getvalue().strip())
        self.assertEqual(obj["event"], "thread_reconstructed")
        self.assertEqual(obj["level"], "INFO")
        self.assertEqual(obj["session_id"], "s1")
        self.assertEqual(obj["url"], "https://x.com/a/status/1")
        self.assertEqual(obj["data"], {"records": 3})
        self.assertFalse(buf.closed)

    def test_min_level_filters(self) -> None:
        buf = io.StringIO()
        log = RunLogger.to_stream(buf, min_level="WARN")

        log.debug("a")
        log.info("b")
        log.warning("c")
        log.error("d")

        events = [json.loads(line)["event"] for line in buf.getvalue().splitlines()]
        self.assertEqual(events, ["c", "d"])

    def test_exception_payload(self) -> None:
        buf = io.StringIO()
        log = RunLogger.to_stream(buf)
        try:
            raise ValueError("bad node")
        except ValueError as e:
            log.exception("candidate_dropped", exc=e, level="WARN", index=2)

        obj = json.loads(buf.getvalue())
        self.assertEqual(obj["level"], "WARN")
        self.assertEqual(obj["data"]["index"], 2)
        self.assertEqual(obj["data"]["error"]["type"], "ValueError")
        self.assertIn("bad node", obj["data"]["error"]["traceback"])

    def test_file_logger_creates_parent_dirs(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nested" / "run.log"
            with RunLogger.open(path) as log:
                log.info("parse_command_started")
                log.info("parse_command_completed", records=0)

            lines = path.read_text(encoding="utf-8").splitlines()
            self.assertEqual([json.loads(ln)["event"] for ln in lines], ["parse_command_started", "parse_command_completed"])

    def test_requires_a_destination(self) -> None:
        with self.assertRaises(ValueError):
            RunLogger()


if __name__ == "__main__":
    unittest.main()
