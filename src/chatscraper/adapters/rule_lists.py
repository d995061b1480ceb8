"""Rule list parsing for command-line arguments.

A list argument is either a path to a JSON file holding a list of strings,
or an inline comma-separated list where ``\\,`` stands for a literal comma.
"""

from __future__ import annotations

import json
import re
from typing import List

from chatscraper.core.errors import InvalidRuleError

_JSON_FILE_RE = re.compile(r"^[\"']?(.+\.json)[\"']?$")
_QUOTED_RE = re.compile(r"^[\"']?(.+?)[\"']?$")
_ITEM_RE = re.compile(r"(?:\\.|[^,])+")


def split_comma_list(text: str) -> List[str]:
    """Split on unescaped commas, keeping ``\\,`` as a literal comma."""

    return [item.replace("\\,", ",") for item in _ITEM_RE.findall(text)]


def load_rule_file(path: str) -> List[str]:
    """Load a JSON file that must contain a list of strings."""

    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as err:
        raise InvalidRuleError(
            f'The file "{path}" either couldn\'t be opened or doesn\'t contain a valid list.'
        ) from err
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise InvalidRuleError(
            f'The file "{path}" either couldn\'t be opened or doesn\'t contain a valid list.'
        )
    return data


def parse_list_arg(arg: str) -> List[str]:
    """Turn a ``--dict`` / ``--users`` value into a list of raw rules."""

    json_file = _JSON_FILE_RE.match(arg)
    if json_file:
        return load_rule_file(json_file.group(1))

    quoted = _QUOTED_RE.match(arg)
    items = split_comma_list(quoted.group(1)) if quoted else []
    if not items:
        raise InvalidRuleError(f"Empty rule list: {arg!r}")
    return items
