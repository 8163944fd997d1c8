"""PatternRegistry: the ordered, mutable rule set a masking pass reads.

One registry per caller (session, CLI invocation, test).  Mutations and
reads share a lock, so a pass always sees a consistent rule list.
"""

from __future__ import annotations
import logging
import threading
from collections.abc import Iterable
from typing import Any

from .errors import DuplicateKey
from .patterns import BUILTIN_KEYS, BUILTIN_RULES, CustomRule, Rule, get_builtin
from .placeholders import validate_label

logger = logging.getLogger(__name__)


class PatternRegistry:
    """Rules keyed by unique string.

    Order: built-in keys in canonical order first, then every other key in
    insertion order.  Overwriting a key keeps its slot.
    """

    __slots__ = ("_rules", "_lock")

    def __init__(self, *, include_builtins: bool = True) -> None:
        self._rules: dict[str, Rule] = {}
        self._lock = threading.RLock()
        if include_builtins:
            for rule in BUILTIN_RULES:
                self._rules[rule.key] = rule

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, rule: Rule, *, replace: bool = True) -> None:
        """Insert a rule; overwrite an existing key unless replace=False.

        Raises InvalidLabel before touching the registry if the label would
        produce placeholders the detector cannot recognise.
        """
        validate_label(rule.label)
        with self._lock:
            if not replace and rule.key in self._rules:
                raise DuplicateKey(f"pattern {rule.key!r} is already registered")
            existed = rule.key in self._rules
            self._rules[rule.key] = rule
        logger.info("%s pattern %s", "replaced" if existed else "added", rule.key)

    def add_or_replace(
        self,
        key: str,
        matcher: Any,
        label: str,
        description: str,
        *,
        source: str | None = None,
    ) -> CustomRule:
        """Register an already-compiled matcher under key."""
        rule = CustomRule(
            key=key,
            label=label,
            description=description,
            source=source if source is not None else getattr(matcher, "pattern", ""),
            matcher=matcher,
        )
        self.add(rule)
        return rule

    def remove(self, key: str) -> None:
        """Delete a rule; unknown keys are ignored."""
        with self._lock:
            removed = self._rules.pop(key, None)
        if removed is not None:
            logger.info("removed pattern %s", key)

    def restore_builtin(self, key: str) -> None:
        """Put a built-in rule back, replacing any override of its key."""
        rule = get_builtin(key)
        if rule is None:
            raise KeyError(f"no built-in pattern {key!r}")
        self.add(rule)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self) -> list[Rule]:
        with self._lock:
            return self._ordered()

    def snapshot(self, keys: Iterable[str] | None = None) -> tuple[Rule, ...]:
        """Stable tuple of active rules; unknown keys in `keys` are skipped."""
        with self._lock:
            rules = self._ordered()
        if keys is None:
            return tuple(rules)
        wanted = set(keys)
        return tuple(r for r in rules if r.key in wanted)

    def get(self, key: str) -> Rule | None:
        with self._lock:
            return self._rules.get(key)

    def keys(self) -> list[str]:
        return [r.key for r in self.list()]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._rules

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)

    def _ordered(self) -> list[Rule]:
        head = [self._rules[k] for k in BUILTIN_KEYS if k in self._rules]
        tail = [r for k, r in self._rules.items() if k not in BUILTIN_KEYS]
        return head + tail
