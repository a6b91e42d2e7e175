from __future__ import annotations

import io
import json
import os
import subprocess
import sys
import tempfile
import unittest
from contextlib import contextmanager, redirect_stderr
from pathlib import Path
from types import ModuleType, SimpleNamespace
from unittest import mock

from html_fixtures import page_html, post_html

from tweet_copy.cli import main


def _run(*args: str) -> subprocess.CompletedProcess:
    repo_root = Path(__file__).resolve().parents[1]

    env = dict(os.environ)
    existing_pp = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = f"{repo_root}{os.pathsep}{existing_pp}" if existing_pp else str(repo_root)

    return subprocess.run(
        [sys.executable, "-m", "tweet_copy", *args],
        cwd=repo_root,
        env=env,
        capture_output=True,
        text=True,
    )


_PAGE = page_html(
    post_html(status_id="1", text="1/2 how to bake bread"),
    post_html(status_id="2", text="2/2 let it cool"),
    post_html(status_id="3", handle="bob", name="Bob", text="nice"),
)


class TestCLISmoke(unittest.TestCase):
    def test_parse_saved_page(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            html_path = Path(td) / "page.html"
            html_path.write_text(_PAGE, encoding="utf-8")

            proc = _run("parse", "--html", str(html_path))

            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            records = json.loads(proc.stdout)
            self.assertEqual([r["id"] for r in records], ["1", "2", "3"])
            self.assertEqual(records[0]["thread_position"], 1)
            self.assertEqual(records[2]["author"]["handle"], "bob")

    def test_parse_flat_payloads(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            html_path = Path(td) / "page.html"
            html_path.write_text(_PAGE, encoding="utf-8")

            proc = _run("parse", "--html", str(html_path), "--flat", "--tag", "baking", "--category", "food")

            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            flat = json.loads(proc.stdout)
            self.assertEqual(flat[0]["username"], "alice")
            self.assertEqual(flat[0]["tags"], ["baking"])
            self.assertEqual(flat[0]["category"], "food")

    def test_thread_from_saved_page(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            html_path = Path(td) / "page.html"
            html_path.write_text(_PAGE, encoding="utf-8")

            proc = _run("thread", "--html", str(html_path), "--post-id", "2")

            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            thread = json.loads(proc.stdout)
            self.assertEqual([r["id"] for r in thread["records"]], ["1", "2"])
            self.assertTrue(thread["is_complete"])
            self.assertEqual(thread["group_id"], "thread_alice_2")

    def test_unknown_post_id_exits_3(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            html_path = Path(td) / "page.html"
            html_path.write_text(_PAGE, encoding="utf-8")

            proc = _run("thread", "--html", str(html_path), "--post-id", "404")

            self.assertEqual(proc.returncode, 3)
            self.assertIn("404", proc.stderr)

    def test_missing_html_exits_3(self) -> None:
        proc = _run("parse", "--html", "/nonexistent/page.html")
        self.assertEqual(proc.returncode, 3)


class _NoBrowser:
    def launch(self, **kwargs) -> None:
        raise RuntimeError("Executable doesn't exist at /ms-playwright/chromium")


@contextmanager
def _sync_playwright_without_browser():
    yield SimpleNamespace(chromium=_NoBrowser())


class TestLiveThread(unittest.TestCase):
    def test_missing_browser_exits_3(self) -> None:
        sync_api = ModuleType("playwright.sync_api")
        sync_api.sync_playwright = _sync_playwright_without_browser
        modules = {"playwright": ModuleType("playwright"), "playwright.sync_api": sync_api}

        err = io.StringIO()
        with mock.patch.dict(sys.modules, modules), redirect_stderr(err):
            code = main(["thread", "--url", "https://x.com/alice/status/1"])

        self.assertEqual(code, 3)
        self.assertIn("Failed to launch browser", err.getvalue())


if __name__ == "__main__":
    unittest.main()
