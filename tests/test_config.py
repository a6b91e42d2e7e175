from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from tweet_copy.config import config_sha256, load_config
from tweet_copy.config_schema import AppConfig
from tweet_copy.errors import ConfigError


_VALID_YAML = """\
extraction:
  base_url: https://twitter.com/
  selector_overrides:
    text:
      - '[data-testid="noteText"]'
      - '  '
      - '[data-testid="noteText"]'

threads:
  time_window_hours: 12
  position_proximity: 1
  load_more_enabled: false

waiting:
  max_wait_seconds: 2.0
  poll_interval_seconds: 0.1
  stability_window_seconds: 0.5
"""


def _write(td: str, text: str) -> Path:
    path = Path(td) / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestConfig(unittest.TestCase):
    def test_load_config_ok(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg = load_config(_write(td, _VALID_YAML))

            self.assertEqual(cfg.extraction.base_url, "https://twitter.com")
            self.assertEqual(cfg.extraction.selector_overrides, {"text": ['[data-testid="noteText"]']})
            self.assertEqual(cfg.threads.time_window_hours, 12)
            self.assertEqual(cfg.threads.position_proximity, 1)
            self.assertFalse(cfg.threads.load_more_enabled)
            self.assertEqual(cfg.waiting.poll_interval_seconds, 0.1)

    def test_defaults(self) -> None:
        cfg = load_config(None)
        self.assertEqual(cfg, AppConfig())
        self.assertEqual(cfg.extraction.base_url, "https://x.com")
        self.assertEqual(cfg.threads.time_window_hours, 24)
        self.assertEqual(cfg.threads.position_proximity, 2)
        self.assertEqual(cfg.waiting.max_wait_seconds, 5.0)

        with tempfile.TemporaryDirectory() as td:
            self.assertEqual(load_config(_write(td, "")), AppConfig())

    def test_rejects_invalid_values(self) -> None:
        bad = {
            "unknown key": "extra: 1\n",
            "unknown cascade": "extraction:\n  selector_overrides:\n    nope: ['a']\n",
            "empty override": "extraction:\n  selector_overrides:\n    text: ['']\n",
            "bad base url": "extraction:\n  base_url: x.com\n",
            "interval above max": "waiting:\n  max_wait_seconds: 1\n  poll_interval_seconds: 2\n",
            "negative proximity": "threads:\n  position_proximity: -1\n",
            "not a mapping": "- a\n- b\n",
            "bad yaml": "extraction: [\n",
        }
        for name, text in bad.items():
            with self.subTest(case=name):
                with tempfile.TemporaryDirectory() as td:
                    with self.assertRaises(ConfigError):
                        load_config(_write(td, text))

    def test_error_message_names_the_field(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ConfigError) as ctx:
                load_config(_write(td, "threads:\n  time_window_hours: 0\n"))
        self.assertIn("threads.time_window_hours", str(ctx.exception))

    def test_missing_file(self) -> None:
        with self.assertRaises(ConfigError):
            load_config("/nonexistent/config.yaml")

    def test_config_sha256_is_stable(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            a = load_config(_write(td, _VALID_YAML))
            b = load_config(_write(td, _VALID_YAML))
        self.assertEqual(config_sha256(a), config_sha256(b))
        self.assertNotEqual(config_sha256(a), config_sha256(AppConfig()))
        self.assertEqual(len(config_sha256(a)), 64)


if __name__ == "__main__":
    unittest.main()
