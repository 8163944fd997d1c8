"""Core types."""

from __future__ import annotations
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Detection:
    """One matched-and-replaced span."""
    rule_key: str          # e.g. "name", "email", "order_id"
    description: str
    original_text: str
    placeholder: str       # "" when produced by detection alone
    start_offset: int      # offsets into the input text of the pass
    end_offset: int


@dataclass(slots=True)
class MaskResult:
    """Result of one masking pass."""
    masked_text: str
    detections: list[Detection] = field(default_factory=list)
    mapping_table: dict[str, str] = field(default_factory=dict)  # placeholder → original


@dataclass(frozen=True, slots=True)
class PatternInfo:
    key: str
    label: str
    description: str
    builtin: bool


@dataclass(slots=True)
class ScanReport:
    """Detect-only summary, no text is rewritten."""
    has_personal_info: bool = False
    total_detections: int = 0
    summary: dict[str, dict] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    error: str | None = None
