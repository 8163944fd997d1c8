"""Masker: replace detected spans with placeholders in one pass.

Overlap policy across rules: every rule is matched against the original
text first, then overlapping candidates are resolved globally.  The
longest span wins; equal lengths go to the rule earlier in the registry,
then to the earlier start.  Precedence therefore never depends on the
order in which substitutions happen.

Survivors are numbered left to right per label (first occurrence → ``A``)
and the output is assembled by copying the unmatched runs between them.
"""

from __future__ import annotations
import logging
from bisect import bisect_right
from collections import defaultdict
from collections.abc import Sequence

from .detector import Candidate, collect_candidates
from .patterns import Rule
from .placeholders import PLACEHOLDER_RE, format_placeholder
from .types import Detection, MaskResult

logger = logging.getLogger(__name__)


def mask(text: str, rules: Sequence[Rule]) -> MaskResult:
    """Mask text with the given rules.

    Empty or whitespace-only input returns an empty result.  Placeholders
    already present in the input are left untouched and their sequence
    letters are not reused, so restoring never confuses old and new tokens.
    """
    if not text or text.isspace():
        return MaskResult(masked_text="")

    winners = resolve_overlaps(collect_candidates(text, rules))
    taken = set(PLACEHOLDER_RE.findall(text))
    counters: dict[str, int] = defaultdict(int)

    parts: list[str] = []
    detections: list[Detection] = []
    mapping: dict[str, str] = {}
    cursor = 0
    for c in winners:
        placeholder = _next_placeholder(c.rule.label, counters, taken)
        parts.append(text[cursor:c.start])
        parts.append(placeholder)
        cursor = c.end

        mapping[placeholder] = c.text
        detections.append(Detection(
            rule_key=c.rule.key,
            description=c.rule.description,
            original_text=c.text,
            placeholder=placeholder,
            start_offset=c.start,
            end_offset=c.end,
        ))
    parts.append(text[cursor:])

    logger.debug(
        "masked %d span(s) with %d rule(s) over %d chars",
        len(detections), len(rules), len(text),
    )
    return MaskResult(
        masked_text="".join(parts),
        detections=detections,
        mapping_table=mapping,
    )


def resolve_overlaps(candidates: list[Candidate]) -> list[Candidate]:
    """Keep a non-overlapping subset: longest first, then rule order, then start."""
    if not candidates:
        return candidates
    ranked = sorted(candidates, key=lambda c: (-c.length, c.order, c.start))
    taken: list[Candidate] = []
    # Accepted spans, kept sorted and disjoint: only the neighbours of an
    # insertion point can overlap a new span.
    starts: list[int] = []
    ends: list[int] = []
    for c in ranked:
        i = bisect_right(starts, c.start)
        if i and ends[i - 1] > c.start:
            continue
        if i < len(starts) and starts[i] < c.end:
            continue
        starts.insert(i, c.start)
        ends.insert(i, c.end)
        taken.append(c)
    return sorted(taken, key=lambda c: c.start)


def _next_placeholder(label: str, counters: dict[str, int], taken: set[str]) -> str:
    # Rules sharing a label share a sequence, keeping placeholders unique
    while True:
        counters[label] += 1
        placeholder = format_placeholder(label, counters[label])
        if placeholder not in taken:
            taken.add(placeholder)
            return placeholder
