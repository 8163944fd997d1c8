"""Restorer: put original values back in place of placeholders."""

from __future__ import annotations
import re
from collections.abc import Mapping


def restore(text: str, mapping_table: Mapping[str, str]) -> str:
    """Replace every literal occurrence of each placeholder in text.

    Substitution is a single left-to-right pass over an escaped
    alternation, so restored values are never rescanned and placeholders
    are matched as plain strings.  Longer keys are tried first.
    Placeholders missing from text, and bracket tokens missing from the
    table, are left as they are.
    """
    if not text or not mapping_table:
        return text
    keys = sorted((k for k in mapping_table if k), key=len, reverse=True)
    if not keys:
        return text
    pattern = re.compile("|".join(re.escape(k) for k in keys))
    return pattern.sub(lambda m: mapping_table[m.group()], text)
