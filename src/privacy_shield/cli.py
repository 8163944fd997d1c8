"""CLI interface for privacy-shield.

Usage:
    # Mask text (stdin: text, stdout: JSON with masked text, detections, mapping)
    echo '田中太郎さんのメールはtanaka@example.comです' | \\
        privacy-shield mask --save "ticket 42"

    # Restore text from a saved snapshot or a mapping file
    echo '[Person_A] replied' | privacy-shield restore --snapshot 1
    echo '[Person_A] replied' | privacy-shield restore --mapping mapping.json

    # Inspect and try patterns
    privacy-shield patterns
    privacy-shield test-pattern 'ORD-\\d{6}' 'ORD-123456 and ORD-654321'

Snapshots and daily usage counts are kept in SQLite so they survive
across calls.
"""

from __future__ import annotations
import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from .config import (
    DEFAULT_DB, active_keys, build_engine, default_settings, export_settings,
    import_settings, load_from_yaml,
)
from .engine import MaskingEngine
from .errors import ConfigError, PatternError
from .logging import configure_logging
from .store import SnapshotStore


def _load_settings(args: argparse.Namespace) -> dict:
    cfg = load_from_yaml(args.config) if args.config else default_settings()
    if args.disable:
        cfg["disabled_patterns"] = list(cfg["disabled_patterns"]) + args.disable.split(",")
    return cfg


def _store(args: argparse.Namespace, cfg: dict) -> SnapshotStore:
    return SnapshotStore(args.db or cfg["store_path"])


def _dump(data: object) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def cmd_mask(args: argparse.Namespace) -> None:
    """Mask text on stdin."""
    cfg = _load_settings(args)
    engine = build_engine(cfg)
    result = engine.mask(sys.stdin.read(), active_keys(cfg, engine))

    output = {
        "masked_text": result.masked_text,
        "detections": [asdict(d) for d in result.detections],
        "mapping_table": result.mapping_table,
        "stats": engine.summarize(result.detections),
    }
    store = _store(args, cfg)
    store.record_usage(result.detections)
    if args.save:
        output["snapshot"] = asdict(store.save(args.save, result.mapping_table))
    store.close()
    _dump(output)


def cmd_restore(args: argparse.Namespace) -> None:
    """Restore placeholders in stdin text."""
    cfg = _load_settings(args)
    if args.mapping:
        mapping = _read_mapping(args.mapping)
    else:
        store = _store(args, cfg)
        try:
            mapping = store.load(args.snapshot)
        finally:
            store.close()
    sys.stdout.write(MaskingEngine.restore(sys.stdin.read(), mapping))


def _read_mapping(path: str) -> dict[str, str]:
    try:
        mapping = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"mapping file {path} is not valid JSON: {exc}") from exc
    if not isinstance(mapping, dict) or not all(isinstance(v, str) for v in mapping.values()):
        raise ConfigError(f"mapping file {path} must be a JSON object of strings")
    return mapping


def cmd_scan(args: argparse.Namespace) -> None:
    """Report what would be masked, without masking."""
    cfg = _load_settings(args)
    engine = build_engine(cfg)
    _dump(asdict(engine.scan(sys.stdin.read(), active_keys(cfg, engine))))


def cmd_patterns(args: argparse.Namespace) -> None:
    """List registered patterns and whether each is enabled."""
    cfg = _load_settings(args)
    engine = build_engine(cfg)
    enabled = set(active_keys(cfg, engine))
    _dump([
        {**asdict(p), "enabled": p.key in enabled}
        for p in engine.list_patterns()
    ])


def cmd_test_pattern(args: argparse.Namespace) -> None:
    """Try a pattern against sample text."""
    engine = MaskingEngine()
    check = engine.validate_pattern(args.regex)
    if not check.valid:
        _dump({"valid": False, "error": check.error})
        raise SystemExit(1)
    _dump({"valid": True, "matches": engine.test_pattern(args.regex, args.sample)})


def cmd_snapshots(args: argparse.Namespace) -> None:
    """List saved mapping snapshots, newest first."""
    cfg = _load_settings(args)
    store = _store(args, cfg)
    _dump([asdict(s) for s in store.list()])
    store.close()


def cmd_usage(args: argparse.Namespace) -> None:
    """Show today's masking counts."""
    cfg = _load_settings(args)
    store = _store(args, cfg)
    _dump(store.usage())
    store.close()


def cmd_export_settings(args: argparse.Namespace) -> None:
    sys.stdout.write(export_settings(_load_settings(args)) + "\n")


def cmd_import_settings(args: argparse.Namespace) -> None:
    """Merge an exported settings file and print the result."""
    cfg = import_settings(_load_settings(args), Path(args.file).read_text(encoding="utf-8"))
    sys.stdout.write(export_settings(cfg) + "\n")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="privacy-shield",
        description="Reversible masking of personal information",
    )
    parser.add_argument("--db", default=None, help=f"SQLite store path (default {DEFAULT_DB})")
    parser.add_argument("--config", default=None, help="YAML settings file")
    parser.add_argument("--disable", default="", help="Comma-separated pattern keys to disable")
    parser.add_argument("--log-level", default=None, help="Logging level")

    sub = parser.add_subparsers(dest="command", required=True)
    p = sub.add_parser("mask", help="Mask text (stdin)")
    p.add_argument("--save", metavar="NAME", help="Save the mapping as a named snapshot")
    p = sub.add_parser("restore", help="Restore masked text (stdin)")
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--mapping", metavar="FILE", help="JSON mapping table file")
    source.add_argument("--snapshot", type=int, metavar="ID", help="Saved snapshot id")
    sub.add_parser("scan", help="Detect without masking (stdin)")
    sub.add_parser("patterns", help="List patterns")
    p = sub.add_parser("test-pattern", help="Try a pattern on sample text")
    p.add_argument("regex")
    p.add_argument("sample")
    sub.add_parser("snapshots", help="List saved snapshots")
    sub.add_parser("usage", help="Show today's usage")
    sub.add_parser("export-settings", help="Print settings as JSON")
    p = sub.add_parser("import-settings", help="Merge a JSON settings export")
    p.add_argument("file")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    cmds = {
        "mask": cmd_mask,
        "restore": cmd_restore,
        "scan": cmd_scan,
        "patterns": cmd_patterns,
        "test-pattern": cmd_test_pattern,
        "snapshots": cmd_snapshots,
        "usage": cmd_usage,
        "export-settings": cmd_export_settings,
        "import-settings": cmd_import_settings,
    }
    try:
        cmds[args.command](args)
    except (ConfigError, PatternError, KeyError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()
