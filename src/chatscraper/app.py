"""Application entry point for the chatscraper command line."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Callable, Optional

from art import tprint
from rich.console import Console

from chatscraper import settings
from chatscraper.adapters.gql_transport import GQLTransport
from chatscraper.adapters.json_cache import JsonChatCache
from chatscraper.adapters.rendering import (
    ProgressIndicator,
    build_console,
    format_message,
    notice,
)
from chatscraper.adapters.rule_lists import parse_list_arg
from chatscraper.adapters.vod_list import get_recent_vods
from chatscraper.core.broadcast_keys import normalize_broadcast_id, unique_broadcast_ids
from chatscraper.core.cancellation import CancelToken
from chatscraper.core.errors import ChatScraperError, QuietAbort
from chatscraper.core.models import ChatMessage
from chatscraper.core.orchestrator import ChatDownloader
from chatscraper.core.rules_engine import RuleSet, build_rules, build_user_rules, evaluate

NAME = "CHATSCRAPER"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/chatscraper.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


class ConsoleListener:
    """Prints matching messages as each broadcast's chat arrives."""

    def __init__(
        self,
        console: Console,
        error_console: Console,
        dictionary_rules: RuleSet,
        user_rules: RuleSet,
        print_links: bool = False,
    ) -> None:
        self._console = console
        self._error_console = error_console
        self._dictionary_rules = dictionary_rules
        self._user_rules = user_rules
        self._print_links = print_links
        self._indicator = ProgressIndicator(console)
        # Set once the downloader exists; the first error stops the whole run.
        self.abort: Optional[Callable[[], None]] = None
        self.found = 0
        self.succeeded: Optional[bool] = None

    def on_data(self, messages: list[ChatMessage], broadcast_id: str) -> None:
        lines = []
        for message in messages:
            result = evaluate(message, self._dictionary_rules, self._user_rules)
            if result.included:
                lines.append(format_message(message, broadcast_id, result.spans, self._print_links))

        if lines:
            self._indicator.clear()
        self.found += len(lines)
        for line in lines:
            self._console.print(line)

    def on_progress(self) -> None:
        self._indicator.tick()

    def on_error(self, error: Exception, broadcast_id: str) -> None:
        self._indicator.clear()
        self._error_console.print(f"Failed to get the chat replay of {broadcast_id}: {error}")
        if self.abort is not None:
            self.abort()

    def on_success(self) -> None:
        self._indicator.clear()
        self.succeeded = True
        self._console.print(notice(f"\nFound {self.found} messages in total.\n"))

    def on_failure(self) -> None:
        self._indicator.clear()
        self.succeeded = False
        self._error_console.print("\nOne or more operations have failed.")


def _broadcast_id_arg(value: str) -> str:
    try:
        return normalize_broadcast_id(value)
    except ValueError as err:
        raise argparse.ArgumentTypeError(str(err)) from err


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatscraper",
        description="Search the chat replays of recorded broadcasts.",
        epilog=(
            "Rulesets are comma-separated lists (\\, escapes a comma) or a path to a "
            "JSON list. '^word' excludes, '=word' matches whole words, '*' matches all."
        ),
    )
    parser.add_argument("ids", nargs="*", type=_broadcast_id_arg, metavar="VIDEO_ID")
    parser.add_argument("--dict", dest="dictionary", help="Ruleset used to filter messages by content.")
    parser.add_argument("--users", help="Ruleset used to filter messages by author login.")
    parser.add_argument("--vods-from", metavar="CHANNEL", help="Also search the channel's most recent VODs.")
    parser.add_argument(
        "--max-vods",
        type=int,
        default=settings.DEFAULT_VOD_LIMIT,
        help="How many recent VODs --vods-from adds.",
    )
    parser.add_argument("--print-links", action="store_true", help="Print timestamped VOD links.")
    parser.add_argument("--plain", action="store_true", help="Do not use escape sequences.")
    cache_mode = parser.add_mutually_exclusive_group()
    cache_mode.add_argument(
        "--force-download",
        action="store_true",
        help="Re-download chat replays even if they are cached.",
    )
    cache_mode.add_argument(
        "--skip-cached",
        action="store_true",
        help="Skip VODs that are already in the cache.",
    )
    parser.add_argument(
        "--no-search",
        action="store_true",
        help="Only print the VOD IDs that would be searched.",
    )
    return parser


async def _run(args: argparse.Namespace, console: Console, error_console: Console) -> int:
    dictionary_rules = build_rules(
        parse_list_arg(args.dictionary) if args.dictionary else []
    )
    user_rules = build_user_rules(parse_list_arg(args.users) if args.users else [])

    ids = list(args.ids)
    async with GQLTransport(settings.transport_config()) as transport:
        if args.vods_from:
            console.print(
                notice(
                    f"\nObtaining the {args.max_vods} most recent VOD IDs from "
                    f"'{args.vods_from}' ..."
                )
            )
            ids.extend(
                await get_recent_vods(transport, args.vods_from, args.max_vods, CancelToken())
            )

        ids = unique_broadcast_ids(ids)
        if not ids:
            error_console.print("No VOD IDs provided.")
            return 1

        config = settings.downloader_config()
        listener = ConsoleListener(
            console,
            error_console,
            dictionary_rules,
            user_rules,
            print_links=args.print_links,
        )
        downloader = ChatDownloader(
            transport,
            JsonChatCache(config.cache_dir),
            listener,
            max_downloads=config.max_downloads,
        )
        listener.abort = downloader.abort_all

        if args.skip_cached:
            ids = downloader.remove_cached_vods_from_list(ids)
        if not ids:
            console.print(notice("\nNo VODs to search!\n"))
            return 0

        if args.no_search:
            console.print(
                notice(f"\nSkipping search. VOD IDs that would have been searched: {' '.join(ids)}\n")
            )
            return 0

        console.print(notice(f"\nSearching chat replays from: {' '.join(ids)} ..."))
        await downloader.get_chat_replays(ids, force_download=args.force_download)

    return 0 if listener.succeeded else 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.ids and not args.vods_from:
        parser.print_help()
        return 0

    console = build_console(plain=args.plain)
    error_console = Console(stderr=True, highlight=False, markup=False, soft_wrap=True)
    if not args.plain:
        _print_banner()
    _configure_logging()
    LOGGER.info("Starting chatscraper")

    try:
        return asyncio.run(_run(args, console, error_console))
    except QuietAbort:
        return 1
    except ChatScraperError as err:
        error_console.print(str(err))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
