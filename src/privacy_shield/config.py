"""YAML/dict settings for privacy-shield.

Settings can come from a YAML file, a plain dict, or a JSON export made
by ``export_settings``.

Example YAML:

    privacy_shield:
      enabled: true
      auto_mask: true
      show_notifications: true
      disabled_patterns:
        - company
      custom_patterns:
        - key: order_id
          regex: 'ORD-\\d{6}'
          label: Order
          description: Order number
      panel:
        dark_mode: false
        font_size: 1
      store:
        path: ~/.privacy-shield/store.db
"""

from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any

from .engine import MaskingEngine
from .errors import ConfigError, PatternError

logger = logging.getLogger(__name__)

DEFAULT_DB = os.environ.get(
    "PRIVACY_SHIELD_DB",
    str(Path.home() / ".privacy-shield" / "store.db"),
)

# Fields carried by export/import, with the type each must have
_PORTABLE = {
    "disabled_patterns": list,
    "custom_patterns": list,
    "auto_mask": bool,
    "show_notifications": bool,
}


def default_settings() -> dict[str, Any]:
    return {
        "enabled": True,
        "auto_mask": True,
        "show_notifications": True,
        "disabled_patterns": [],
        "custom_patterns": [],
        "dark_mode": False,
        "font_size": 1,
        "store_path": DEFAULT_DB,
    }


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "privacy_shield" key or flat
    if "privacy_shield" in data:
        data = data["privacy_shield"] or {}
    if not isinstance(data, dict):
        raise ConfigError(f"settings must be a mapping, got {type(data).__name__}")

    defaults = default_settings()
    panel = data.get("panel") or {}
    custom = data.get("custom_patterns") or []
    disabled = data.get("disabled_patterns") or []
    if not isinstance(custom, list) or not all(isinstance(p, dict) for p in custom):
        raise ConfigError("custom_patterns must be a list of mappings")
    if not isinstance(disabled, list):
        raise ConfigError("disabled_patterns must be a list of pattern keys")
    return {
        "enabled": data.get("enabled", defaults["enabled"]),
        "auto_mask": data.get("auto_mask", defaults["auto_mask"]),
        "show_notifications": data.get("show_notifications", defaults["show_notifications"]),
        "disabled_patterns": list(disabled),
        "custom_patterns": [dict(p) for p in custom],
        "dark_mode": panel.get("dark_mode", defaults["dark_mode"]),
        "font_size": panel.get("font_size", defaults["font_size"]),
        "store_path": (data.get("store") or {}).get("path", defaults["store_path"]),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml
    with open(path, encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse {path}: {exc}") from exc
    return load_config(raw)


def build_engine(cfg: dict[str, Any]) -> MaskingEngine:
    """Create an engine with the configured custom patterns.

    A custom pattern that fails to register is logged and skipped; the
    remaining patterns still load.
    """
    engine = MaskingEngine()
    for pattern in cfg.get("custom_patterns", []):
        key = pattern.get("key", "")
        try:
            engine.add_pattern(
                key,
                pattern.get("regex", ""),
                pattern.get("label", ""),
                pattern.get("description", ""),
            )
        except PatternError as exc:
            logger.warning("skipping custom pattern %r: %s", key, exc)
    return engine


def active_keys(cfg: dict[str, Any], engine: MaskingEngine) -> list[str]:
    """Registered keys minus the disabled ones.

    With `enabled: false` nothing is active, so masking passes text
    through unchanged and reports no detections.
    """
    if not cfg.get("enabled", True):
        return []
    disabled = set(cfg.get("disabled_patterns", []))
    return [k for k in engine.registry.keys() if k not in disabled]


def export_settings(cfg: dict[str, Any]) -> str:
    """Serialize the portable part of the settings as JSON."""
    return json.dumps(
        {name: cfg[name] for name in _PORTABLE if name in cfg},
        ensure_ascii=False,
        indent=2,
    )


def import_settings(cfg: dict[str, Any], raw: str) -> dict[str, Any]:
    """Merge an export into cfg, returning a new dict.

    Only fields with the expected type are taken; anything else in the
    document is ignored.
    """
    try:
        imported = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"settings file is not valid JSON: {exc}") from exc
    if not isinstance(imported, dict):
        raise ConfigError("settings file must contain a JSON object")

    merged = dict(cfg)
    for name, kind in _PORTABLE.items():
        if isinstance(imported.get(name), kind):
            merged[name] = imported[name]
    return merged
