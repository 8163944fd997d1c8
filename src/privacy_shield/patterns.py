"""Detection rules: built-in and custom.

Built-in rules are compiled with stdlib ``re`` at import time.  Custom
rules come from users, so they are compiled once at registration with
RE2, whose matching time is linear in the input: a user pattern cannot
trigger catastrophic backtracking on any later call.  Patterns RE2 can't
express (backreferences, lookaround) are rejected up front.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Any, Union

import re2

from .errors import InvalidMatcher
from .types import ValidationResult

logger = logging.getLogger(__name__)

MAX_PATTERN_LENGTH = 1000


@dataclass(frozen=True, slots=True)
class BuiltinRule:
    """A rule shipped with the engine, identified by a fixed key."""
    key: str
    label: str
    description: str
    matcher: re.Pattern

    @property
    def builtin(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class CustomRule:
    """A user-defined rule: source pattern plus its compiled form."""
    key: str
    label: str
    description: str
    source: str
    matcher: Any           # re2._Regexp, compiled at registration

    @property
    def builtin(self) -> bool:
        return False


Rule = Union[BuiltinRule, CustomRule]

# Characters that end an address or company run
_STOP = r"[^\s、。,.\[\]]"

# Canonical order matters: it is the registry order and breaks ties
# between equally long overlapping matches.
BUILTIN_RULES: tuple[BuiltinRule, ...] = (
    # Japanese full names, optionally followed by an honorific
    BuiltinRule("name", "Person", "Personal name", re.compile(
        r"[一-龯々]{2,4}\s*[一-龯々]{2,4}(?:さん|様|氏|殿|くん|ちゃん)?"
    )),

    # Email: ASCII only so adjacent kana/kanji are not swallowed
    BuiltinRule("email", "Email", "Email address", re.compile(
        r"(?<![A-Za-z0-9._%+\-])"
        r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}"
    )),

    # Phone: Japanese domestic and +81 formats
    BuiltinRule("phone", "Phone", "Phone number", re.compile(
        r"(?<![0-9])"
        r"(?:\+81[\-\s]?|0)[0-9]{1,4}[\-\s]?[0-9]{1,4}[\-\s]?[0-9]{4}"
        r"(?![0-9])"
    )),

    # Postal address: starts at a prefecture
    BuiltinRule("address", "Location", "Postal address", re.compile(
        r"(?:東京都|北海道|(?:京都|大阪)府|[一-龯々]{2,3}県)[\s　]*" + _STOP + r"{2,}"
    )),

    # Organization names: Japanese corporate forms and common English suffixes
    BuiltinRule("company", "Company", "Organization name", re.compile(
        r"(?:株式会社|有限会社|合同会社|一般社団法人|公益財団法人)[\s　]*" + _STOP + r"{2,}"
        r"|" + _STOP + r"{2,}(?:株式会社|有限会社|合同会社)"
        r"|(?<![A-Za-z0-9])[A-Z][A-Za-z0-9&\-]*(?:\s[A-Z][A-Za-z0-9&\-]*)*"
        r"\s(?:Inc|Corp|LLC|Ltd)\b\.?"
    )),
)

BUILTIN_KEYS: tuple[str, ...] = tuple(r.key for r in BUILTIN_RULES)


def get_builtin(key: str) -> BuiltinRule | None:
    for rule in BUILTIN_RULES:
        if rule.key == key:
            return rule
    return None


def compile_custom(source: str) -> Any:
    """Compile a user-supplied pattern with RE2.

    Raises InvalidMatcher for empty, oversized or unsupported patterns and
    for patterns that match the empty string (they would mask nothing but
    produce zero-width spans everywhere).
    """
    if not source:
        raise InvalidMatcher("pattern is empty")
    if len(source) > MAX_PATTERN_LENGTH:
        raise InvalidMatcher(
            f"pattern is {len(source)} characters, limit is {MAX_PATTERN_LENGTH}"
        )
    try:
        compiled = re2.compile(source)
    except re2.error as exc:
        raise InvalidMatcher(f"invalid pattern {source!r}: {exc}") from exc
    if compiled.search("") is not None:
        raise InvalidMatcher(f"pattern {source!r} matches the empty string")
    return compiled


def validate_matcher(source: str) -> ValidationResult:
    """Check a pattern without registering it."""
    try:
        compile_custom(source)
    except InvalidMatcher as exc:
        logger.warning("rejected pattern: %s", exc)
        return ValidationResult(valid=False, error=str(exc))
    return ValidationResult(valid=True)


def make_custom_rule(key: str, source: str, label: str, description: str) -> CustomRule:
    return CustomRule(
        key=key,
        label=label,
        description=description,
        source=source,
        matcher=compile_custom(source),
    )
