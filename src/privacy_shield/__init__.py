"""privacy-shield: reversible, pattern-based masking of personal information."""

from .engine import MaskingEngine
from .registry import PatternRegistry
from .patterns import BuiltinRule, CustomRule, validate_matcher
from .restorer import restore
from .stats import summarize
from .store import SnapshotStore, Snapshot
from .errors import PatternError, InvalidMatcher, InvalidLabel, DuplicateKey, ConfigError
from .types import Detection, MaskResult, PatternInfo, ScanReport, ValidationResult

__all__ = [
    "MaskingEngine", "PatternRegistry",
    "BuiltinRule", "CustomRule", "validate_matcher",
    "restore", "summarize",
    "SnapshotStore", "Snapshot",
    "PatternError", "InvalidMatcher", "InvalidLabel", "DuplicateKey", "ConfigError",
    "Detection", "MaskResult", "PatternInfo", "ScanReport", "ValidationResult",
]
__version__ = "0.1.0"
