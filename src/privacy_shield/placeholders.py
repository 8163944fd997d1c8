"""Placeholder tokens: the textual contract other processes parse back.

Format: ``[<Label>_<Seq>]`` where ``<Seq>`` is a bijective base-26 letter
sequence (spreadsheet-column style):

    1 → A, 26 → Z, 27 → AA, 52 → AZ, 53 → BA, 702 → ZZ, 703 → AAA

Brackets keep placeholders distinguishable from ordinary text, so a
placeholder is never mistaken for fresh sensitive content.
"""

from __future__ import annotations
import re

from .errors import InvalidLabel

_TOKEN_FMT = "[{label}_{seq}]"

# Any placeholder-shaped token, ours or from an earlier pass
PLACEHOLDER_RE = re.compile(r"\[[^\[\]\s]+_[A-Z]+\]")

_LABEL_RE = re.compile(r"[^\[\]\s]+")


def sequence_letters(n: int) -> str:
    """Render a 1-based counter as ``A``, ``B``, … ``Z``, ``AA``, ``AB``, …"""
    if n < 1:
        raise ValueError(f"sequence numbers start at 1, got {n}")
    letters: list[str] = []
    while n:
        n, rem = divmod(n - 1, 26)
        letters.append(chr(ord("A") + rem))
    return "".join(reversed(letters))


def format_placeholder(label: str, n: int) -> str:
    return _TOKEN_FMT.format(label=label, seq=sequence_letters(n))


def is_placeholder_shaped(text: str) -> bool:
    """True for any bracket-delimited span."""
    return len(text) >= 2 and text.startswith("[") and text.endswith("]")


def placeholder_spans(text: str) -> list[tuple[int, int]]:
    """(start, end) of every placeholder already present in text."""
    return [m.span() for m in PLACEHOLDER_RE.finditer(text)]


def validate_label(label: str) -> None:
    """Reject labels that would break the placeholder grammar."""
    if not label or not _LABEL_RE.fullmatch(label):
        raise InvalidLabel(
            f"label {label!r} must be non-empty and contain no whitespace or brackets"
        )
