"""Rule compilation and matching logic (core domain)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import re
from typing import Iterable, List, Optional, Tuple

from chatscraper.core.errors import InvalidRuleError
from chatscraper.core.models import ChatMessage, MatchSpan

BLACKLIST_PREFIX = "^"
EXACT_WORD_PREFIX = "="
WILDCARD = "*"
MATCH_STYLE = "match"


class RuleKind(str, Enum):
    BLACKLIST = "blacklist"
    EXACT_WORD = "exact-word"
    SUBSTRING = "substring"
    WILDCARD = "wildcard"


@dataclass(frozen=True)
class Rule:
    """Compiled rule used by the match engine."""

    kind: RuleKind
    pattern: str
    regex: Optional[re.Pattern] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class RuleSet:
    """A list of rules plus whether the wildcard was among them."""

    rules: Tuple[Rule, ...] = ()
    wildcard: bool = False

    @property
    def active(self) -> bool:
        """True when there is at least one rule besides the wildcard."""

        return bool(self.rules)


@dataclass(frozen=True)
class MatchResult:
    """Inclusion decision for one message and its raw highlight spans."""

    included: bool
    spans: List[MatchSpan]


def parse_rule(raw: str) -> Rule:
    """Parse and compile one dictionary rule.

    Prefixes: ``^`` excludes, ``=`` matches whole words, ``*`` alone is the
    wildcard. Anything else is a regular expression.
    """

    text = raw.lower()
    if text == WILDCARD:
        return Rule(kind=RuleKind.WILDCARD, pattern=WILDCARD)

    if text.startswith(BLACKLIST_PREFIX):
        kind, pattern = RuleKind.BLACKLIST, text[len(BLACKLIST_PREFIX):]
    elif text.startswith(EXACT_WORD_PREFIX):
        kind, pattern = RuleKind.EXACT_WORD, text[len(EXACT_WORD_PREFIX):]
    else:
        kind, pattern = RuleKind.SUBSTRING, text

    if not pattern:
        raise InvalidRuleError(f"Empty rule: {raw!r}")

    if kind is RuleKind.BLACKLIST:
        return Rule(kind=kind, pattern=pattern)
    if kind is RuleKind.EXACT_WORD:
        return Rule(kind=kind, pattern=pattern, regex=re.compile(rf"\b{re.escape(pattern)}\b"))
    try:
        regex = re.compile(pattern)
    except re.error as err:
        raise InvalidRuleError(f"Invalid pattern {raw!r}: {err}") from err
    return Rule(kind=kind, pattern=pattern, regex=regex)


def build_rules(raw_rules: Iterable[str]) -> RuleSet:
    """Compile dictionary (content) rules once, before any download."""

    rules: List[Rule] = []
    wildcard = False
    for raw in raw_rules:
        rule = parse_rule(raw)
        if rule.kind is RuleKind.WILDCARD:
            wildcard = True
            continue
        rules.append(rule)
    return RuleSet(rules=tuple(rules), wildcard=wildcard)


def build_user_rules(raw_rules: Iterable[str]) -> RuleSet:
    """Compile user rules.

    Every user rule is a whole login, so a leading ``=`` is redundant and
    dropped; ``^login`` blacklists a user.
    """

    rules: List[Rule] = []
    wildcard = False
    for raw in raw_rules:
        text = raw.lower().strip()
        if text.startswith(EXACT_WORD_PREFIX):
            text = text[len(EXACT_WORD_PREFIX):]
        if text == WILDCARD:
            wildcard = True
            continue
        if text.startswith(BLACKLIST_PREFIX):
            kind, pattern = RuleKind.BLACKLIST, text[len(BLACKLIST_PREFIX):]
        else:
            kind, pattern = RuleKind.EXACT_WORD, text
        if not pattern:
            raise InvalidRuleError(f"Empty user rule: {raw!r}")
        rules.append(Rule(kind=kind, pattern=pattern))
    return RuleSet(rules=tuple(rules), wildcard=wildcard)


def _user_allowed(login: str, user_rules: RuleSet) -> bool:
    if not user_rules.active:
        return True
    for rule in user_rules.rules:
        if rule.kind is RuleKind.BLACKLIST and rule.pattern == login:
            return False
    if user_rules.wildcard:
        return True
    return any(
        rule.kind is not RuleKind.BLACKLIST and rule.pattern == login
        for rule in user_rules.rules
    )


def evaluate(message: ChatMessage, dictionary_rules: RuleSet, user_rules: RuleSet) -> MatchResult:
    """Decide whether a message is shown and which parts to highlight.

    Matching logic:
    - User rules run first; a blacklisted or unlisted author is rejected.
    - Any blacklist substring in the body rejects the message outright.
    - Otherwise the message needs at least one whitelist hit, unless the
      dictionary is empty or holds the wildcard.
    """

    if not _user_allowed(message.author.name, user_rules):
        return MatchResult(included=False, spans=[])

    if not dictionary_rules.active:
        return MatchResult(included=True, spans=[])

    lowered = message.body.lower()
    whitelisted = dictionary_rules.wildcard
    spans: List[MatchSpan] = []

    for rule in dictionary_rules.rules:
        if rule.kind is RuleKind.BLACKLIST:
            if rule.pattern in lowered:
                return MatchResult(included=False, spans=[])
            continue
        # With the wildcard every message is whitelisted already; only the
        # blacklist can still reject it.
        if dictionary_rules.wildcard or rule.regex is None:
            continue
        for match in rule.regex.finditer(lowered):
            whitelisted = True
            spans.append(MatchSpan(start=match.start(), end=match.end(), style=MATCH_STYLE))

    if not whitelisted:
        return MatchResult(included=False, spans=[])
    return MatchResult(included=True, spans=spans)
