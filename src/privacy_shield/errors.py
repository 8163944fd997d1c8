"""Error taxonomy.

Everything is local to the call that raised it: a failed registration
leaves the pattern registry exactly as it was.
"""

from __future__ import annotations


class PatternError(ValueError):
    """Base class for pattern registration failures."""


class InvalidMatcher(PatternError):
    """The matching expression is malformed or cannot be bounded."""


class InvalidLabel(PatternError):
    """The label would produce an unparseable placeholder."""


class DuplicateKey(PatternError):
    """A rule with this key exists and overwriting was not requested."""


class ConfigError(ValueError):
    """Settings could not be parsed or imported."""
