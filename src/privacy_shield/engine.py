"""MaskingEngine: the main API.

Usage:
    from privacy_shield import MaskingEngine

    engine = MaskingEngine()             # owns its own pattern registry
    engine.add_pattern("order_id", r"ORD-\\d{6}", "Order", "Order number")

    result = engine.mask("田中太郎さん ordered ORD-123456")
    print(result.masked_text)            # "[Person_A] ordered [Order_A]"

    reply = "Shipped [Order_A] to [Person_A]."
    print(engine.restore(reply, result.mapping_table))
    # "Shipped ORD-123456 to 田中太郎さん."

The engine keeps no state between calls except its registry.  Mapping
tables belong to the caller, who decides how long to keep them.
"""

from __future__ import annotations
import logging
from collections.abc import Iterable, Mapping

from . import detector, masker, restorer, stats
from .errors import PatternError
from .patterns import Rule, compile_custom, make_custom_rule, validate_matcher
from .placeholders import validate_label
from .registry import PatternRegistry
from .types import Detection, MaskResult, PatternInfo, ScanReport, ValidationResult

logger = logging.getLogger(__name__)


class MaskingEngine:
    """Pattern-based reversible masking."""

    def __init__(self, registry: PatternRegistry | None = None) -> None:
        self.registry = registry if registry is not None else PatternRegistry()

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------

    def add_pattern(
        self,
        key: str,
        matcher_source: str,
        label: str,
        description: str = "",
    ) -> Rule:
        """Compile and register a custom pattern, overwriting any same key.

        Raises PatternError (InvalidMatcher / InvalidLabel); the registry is
        untouched on failure.
        """
        if not key:
            raise PatternError("pattern key must be non-empty")
        validate_label(label)
        rule = make_custom_rule(key, matcher_source, label, description or key)
        self.registry.add(rule)
        return rule

    def remove_pattern(self, key: str) -> None:
        self.registry.remove(key)

    def restore_builtin(self, key: str) -> None:
        self.registry.restore_builtin(key)

    def list_patterns(self) -> list[PatternInfo]:
        return [
            PatternInfo(key=r.key, label=r.label, description=r.description, builtin=r.builtin)
            for r in self.registry.list()
        ]

    def validate_pattern(self, matcher_source: str) -> ValidationResult:
        return validate_matcher(matcher_source)

    def test_pattern(self, matcher_source: str, sample: str) -> list[str]:
        """Matches of a candidate pattern in sample text, for previewing."""
        compiled = compile_custom(matcher_source)
        return [m.group() for m in compiled.finditer(sample)]

    # ------------------------------------------------------------------
    # Masking
    # ------------------------------------------------------------------

    def mask(self, text: str, active_rule_keys: Iterable[str] | None = None) -> MaskResult:
        """Mask text with all rules, or only those in active_rule_keys."""
        return masker.mask(text, self.registry.snapshot(active_rule_keys))

    def detect(self, text: str, active_rule_keys: Iterable[str] | None = None) -> list[Detection]:
        return detector.detect(text, self.registry.snapshot(active_rule_keys))

    def scan(self, text: str, active_rule_keys: Iterable[str] | None = None) -> ScanReport:
        return detector.scan(text, self.registry.snapshot(active_rule_keys))

    @staticmethod
    def restore(text: str, mapping_table: Mapping[str, str]) -> str:
        return restorer.restore(text, mapping_table)

    @staticmethod
    def summarize(detections: Iterable[Detection]) -> dict[str, dict]:
        return stats.summarize(detections)
