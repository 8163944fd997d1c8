"""Detector: find rule matches in unmodified text.

Every rule is run independently over the same input, so matches from
different rules may overlap; the masker decides who wins.  Placeholders
already in the text are never part of a reported span.
"""

from __future__ import annotations
from collections.abc import Sequence
from dataclasses import dataclass

from .patterns import Rule
from .placeholders import is_placeholder_shaped, placeholder_spans
from .types import Detection, ScanReport

_MAX_SAMPLES = 3


@dataclass(frozen=True, slots=True)
class Candidate:
    """A raw match before overlap resolution."""
    rule: Rule
    order: int             # position of the rule in the pass's rule list
    start: int
    end: int
    text: str

    @property
    def length(self) -> int:
        return self.end - self.start


def collect_candidates(text: str, rules: Sequence[Rule]) -> list[Candidate]:
    """All per-rule matches, sorted by (start, rule order).

    Each rule only scans the gaps between placeholders already in the
    text, so a placeholder is never part of a match but sensitive text
    right next to one still is.
    """
    if not text or text.isspace():
        return []
    gaps = _gaps(text, placeholder_spans(text))
    found: list[Candidate] = []
    for order, rule in enumerate(rules):
        for pos, endpos in gaps:
            for m in rule.matcher.finditer(text, pos, endpos):
                start, end = m.start(), m.end()
                if start == end:
                    continue
                matched = m.group()
                if is_placeholder_shaped(matched):
                    continue
                found.append(Candidate(rule, order, start, end, matched))
    found.sort(key=lambda c: (c.start, c.order))
    return found


def _gaps(text: str, protected: list[tuple[int, int]]) -> list[tuple[int, int]]:
    # protected spans come from finditer: sorted and disjoint
    gaps: list[tuple[int, int]] = []
    cursor = 0
    for s, e in protected:
        if s > cursor:
            gaps.append((cursor, s))
        cursor = e
    if cursor < len(text):
        gaps.append((cursor, len(text)))
    return gaps


def detect(text: str, rules: Sequence[Rule]) -> list[Detection]:
    """Report every match left to right, without rewriting anything."""
    return [
        Detection(
            rule_key=c.rule.key,
            description=c.rule.description,
            original_text=c.text,
            placeholder="",
            start_offset=c.start,
            end_offset=c.end,
        )
        for c in collect_candidates(text, rules)
    ]


def scan(text: str, rules: Sequence[Rule]) -> ScanReport:
    """Summarize what would be masked: counts plus a few samples per rule."""
    report = ScanReport()
    for d in detect(text, rules):
        entry = report.summary.setdefault(
            d.rule_key, {"description": d.description, "count": 0, "samples": []}
        )
        entry["count"] += 1
        if len(entry["samples"]) < _MAX_SAMPLES:
            entry["samples"].append(d.original_text)
        report.total_detections += 1
    report.has_personal_info = report.total_detections > 0
    return report
