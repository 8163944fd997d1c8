"""Statistics over a detection report."""

from __future__ import annotations
from collections.abc import Iterable

from .types import Detection


def summarize(detections: Iterable[Detection]) -> dict[str, dict]:
    """Count detections per rule key.

    Keys with no detections are absent; callers that display every rule
    fill in zeros themselves.
    """
    stats: dict[str, dict] = {}
    for d in detections:
        entry = stats.setdefault(d.rule_key, {"description": d.description, "count": 0})
        entry["count"] += 1
    return stats
