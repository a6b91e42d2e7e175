from __future__ import annotations

import argparse
import json
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from .config import config_sha256, load_config
from .config_schema import AppConfig
from .errors import ConfigError, ExtractionError, HostError
from .export import flatten_for_export, record_to_dict, thread_to_dict
from .host import HostPage, PlaywrightHost, StaticHost
from .parser import RecordParser
from .reconstruct import ThreadReconstructor
from .run_log import RunLogger

_LIVE_READY_SELECTOR = 'article[data-testid="tweet"]'
_LIVE_TIMEOUT_MS = 15000


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, help="Path to YAML config file.")
    p.add_argument("--log", default=None, help="Write JSONL events to this file (default: warnings to stderr).")
    p.add_argument("--page-url", default="", help="Address the saved page was captured from.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tweet_copy")

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse = subparsers.add_parser(
        "parse",
        help="Extract every post record from a saved page.",
    )
    parse.add_argument("--html", required=True, help="Path to a saved HTML page.")
    parse.add_argument(
        "--flat",
        action="store_true",
        help="Emit flattened export payloads instead of full records.",
    )
    parse.add_argument("--tag", action="append", default=[], help="Tag added to flattened payloads (repeatable).")
    parse.add_argument("--category", default=None, help="Category added to flattened payloads.")
    _add_common(parse)
    parse.set_defaults(_handler=_cmd_parse)

    thread = subparsers.add_parser(
        "thread",
        help="Reconstruct the thread a post belongs to.",
    )
    source = thread.add_mutually_exclusive_group(required=True)
    source.add_argument("--html", help="Path to a saved HTML page.")
    source.add_argument("--url", help="Open this address in a browser (requires Playwright).")
    thread.add_argument("--post-id", default=None, help="Seed post id (default: the page's main post).")
    thread.add_argument(
        "--from-position",
        type=int,
        default=None,
        help="Only keep the thread from this numbered position on.",
    )
    _add_common(thread)
    thread.set_defaults(_handler=_cmd_thread)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True))


def _open_logger(args: argparse.Namespace) -> RunLogger:
    if args.log:
        return RunLogger.open(args.log, overwrite=True)
    return RunLogger.to_stream(sys.stderr, min_level="WARN")


@contextmanager
def _live_host(url: str, cfg: AppConfig) -> Iterator[PlaywrightHost]:
    try:
        from playwright.sync_api import sync_playwright
    except ImportError as e:
        raise HostError("Playwright is not installed; install tweet-copy[browser]") from e

    with sync_playwright() as pw:
        try:
            browser = pw.chromium.launch(headless=True)
        except Exception as e:
            raise HostError(f"Failed to launch browser: {e}") from e
        try:
            page = browser.new_page()
            try:
                page.goto(url, wait_until="domcontentloaded")
                page.wait_for_selector(_LIVE_READY_SELECTOR, timeout=_LIVE_TIMEOUT_MS)
            except Exception as e:
                raise HostError(f"Failed to load {url}: {e}") from e
            yield PlaywrightHost(page, activate_timeout_seconds=cfg.waiting.max_wait_seconds)
        finally:
            browser.close()


def _cmd_parse(args: argparse.Namespace) -> int:
    with _open_logger(args) as log:
        log.info("parse_command_started", html=str(args.html), page_url=args.page_url)
        try:
            cfg = load_config(args.config)
            log.info("config_loaded", config_path=args.config, config_sha256=config_sha256(cfg))

            host = StaticHost.from_file(args.html, page_url=args.page_url)
            parser = RecordParser.from_config(cfg, page_url=host.page_url, logger=log)
            records = parser.parse_many(parser.find_post_nodes(host.document()))

            if args.flat:
                _print_json([flatten_for_export(r, tags=args.tag, category=args.category) for r in records])
            else:
                _print_json([record_to_dict(r) for r in records])

            log.info("parse_command_completed", records=len(records))
            return 0
        except Exception as e:
            log.exception("parse_command_failed", exc=e)
            raise


def _reconstruct(host: HostPage, cfg: AppConfig, args: argparse.Namespace, log: RunLogger) -> int:
    reconstructor = ThreadReconstructor(host, config=cfg, logger=log)
    parser = reconstructor.parser
    root = host.document()
    node = parser.find_by_id(root, args.post_id) if args.post_id else parser.find_main_post(root)
    if node is None:
        raise ExtractionError(f"No post found for id={args.post_id or '<main post>'}")

    if args.from_position is not None:
        thread = reconstructor.reconstruct_from_position(node, args.from_position)
    else:
        thread = reconstructor.reconstruct(node)
    if thread is None:
        raise ExtractionError("The seed post could not be extracted")

    _print_json(thread_to_dict(thread))
    return 0


def _cmd_thread(args: argparse.Namespace) -> int:
    with _open_logger(args) as log:
        log.info("thread_command_started", html=args.html, url=args.url, post_id=args.post_id)
        try:
            cfg = load_config(args.config)
            log.info("config_loaded", config_path=args.config, config_sha256=config_sha256(cfg))

            if args.url:
                with _live_host(args.url, cfg) as live:
                    return _reconstruct(live, cfg, args, log)

            host = StaticHost.from_file(args.html, page_url=args.page_url)
            return _reconstruct(host, cfg, args, log)
        except Exception as e:
            log.exception("thread_command_failed", exc=e)
            raise


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except (ExtractionError, HostError) as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
