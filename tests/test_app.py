from __future__ import annotations

import io

import pytest
from rich.console import Console

from chatscraper.app import ConsoleListener, build_parser, main
from chatscraper.core.errors import TerminalTransportError
from chatscraper.core.models import Author, ChatMessage
from chatscraper.core.rules_engine import build_rules, build_user_rules


def _message(body: str, login: str = "viewer") -> ChatMessage:
    return ChatMessage(
        created="2024-01-01T00:00:00.000Z",
        stream_timestamp=10.0,
        author=Author(display_name=login, name=login, id="1"),
        body=body,
    )


def _console() -> Console:
    return Console(file=io.StringIO(), color_system=None, highlight=False, markup=False)


def _listener(dictionary: list[str], users: tuple[str, ...] = ()) -> tuple[ConsoleListener, Console, Console]:
    out, err = _console(), _console()
    listener = ConsoleListener(out, err, build_rules(dictionary), build_user_rules(list(users)))
    return listener, out, err


def test_listener_prints_only_matching_messages() -> None:
    listener, out, _ = _listener(["hello", "^spam"])

    listener.on_data([_message("hello there"), _message("hello spam"), _message("bye")], "123")
    listener.on_success()

    output = out.file.getvalue()
    assert "hello there" in output
    assert "hello spam" not in output
    assert "bye" not in output
    assert "Found 1 messages in total." in output
    assert listener.found == 1
    assert listener.succeeded is True


def test_listener_error_aborts_run() -> None:
    listener, _, err = _listener([])
    aborted = []
    listener.abort = lambda: aborted.append(True)

    listener.on_error(TerminalTransportError("boom"), "55")
    listener.on_failure()

    assert aborted == [True]
    assert "55" in err.file.getvalue()
    assert "One or more operations have failed." in err.file.getvalue()
    assert listener.succeeded is False


def test_parser_rejects_conflicting_cache_options() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["123", "--force-download", "--skip-cached"])


def test_parser_rejects_invalid_ids() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["abc"])


def test_parser_normalizes_ids() -> None:
    args = build_parser().parse_args(["0123", "--dict=hello", "--users", "*,^bot"])

    assert args.ids == ["123"]
    assert args.dictionary == "hello"
    assert args.users == "*,^bot"


def test_main_without_ids_prints_help(capsys) -> None:
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()
