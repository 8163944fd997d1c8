"""SQLite-backed storage for mapping snapshots and daily usage counts.

The engine never persists anything; this is the caller-side store the
CLI uses to keep mapping tables around between invocations.

Usage:
    store = SnapshotStore("~/.privacy-shield/store.db")
    snap = store.save("support ticket", result.mapping_table)
    mapping = store.load(snap.id)
"""

from __future__ import annotations
import json
import logging
import sqlite3
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path

from .types import Detection

logger = logging.getLogger(__name__)

MAX_SNAPSHOTS = 10

_SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    entry_count INTEGER NOT NULL,
    mapping TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS usage (
    day TEXT PRIMARY KEY,
    masking_count INTEGER NOT NULL DEFAULT 0,
    protected_items INTEGER NOT NULL DEFAULT 0
);
"""


@dataclass(frozen=True, slots=True)
class Snapshot:
    id: int
    name: str
    created_at: str        # ISO-8601, UTC
    entry_count: int


class SnapshotStore:
    """Named, timestamped mapping tables; only the newest MAX_SNAPSHOTS are kept."""

    __slots__ = ("_db", "_limit")

    def __init__(self, db_path: str | Path = "store.db", *, limit: int = MAX_SNAPSHOTS) -> None:
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._db.executescript(_SCHEMA)
        self._limit = limit

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save(self, name: str, mapping_table: Mapping[str, str]) -> Snapshot:
        """Store a mapping table, evicting the oldest beyond the limit."""
        created_at = datetime.now(timezone.utc).isoformat()
        cur = self._db.execute(
            "INSERT INTO snapshots (name, created_at, entry_count, mapping) VALUES (?, ?, ?, ?)",
            (name, created_at, len(mapping_table), json.dumps(dict(mapping_table), ensure_ascii=False)),
        )
        evicted = self._db.execute(
            "DELETE FROM snapshots WHERE id NOT IN "
            "(SELECT id FROM snapshots ORDER BY id DESC LIMIT ?)",
            (self._limit,),
        ).rowcount
        self._db.commit()
        if evicted:
            logger.info("evicted %d old snapshot(s)", evicted)
        return Snapshot(cur.lastrowid, name, created_at, len(mapping_table))

    def list(self) -> list[Snapshot]:
        """All snapshots, newest first."""
        rows = self._db.execute(
            "SELECT id, name, created_at, entry_count FROM snapshots ORDER BY id DESC"
        ).fetchall()
        return [Snapshot(*row) for row in rows]

    def load(self, snapshot_id: int) -> dict[str, str]:
        row = self._db.execute(
            "SELECT mapping FROM snapshots WHERE id = ?", (snapshot_id,)
        ).fetchone()
        if row is None:
            raise KeyError(f"no snapshot with id {snapshot_id}")
        return json.loads(row[0])

    def delete(self, snapshot_id: int) -> None:
        self._db.execute("DELETE FROM snapshots WHERE id = ?", (snapshot_id,))
        self._db.commit()

    def clear(self) -> None:
        self._db.execute("DELETE FROM snapshots")
        self._db.commit()

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    def record_usage(self, detections: Iterable[Detection], day: date | None = None) -> None:
        """Count one masking pass and its protected items for the day."""
        items = sum(1 for _ in detections)
        self._db.execute(
            "INSERT INTO usage (day, masking_count, protected_items) VALUES (?, 1, ?) "
            "ON CONFLICT(day) DO UPDATE SET "
            "masking_count = masking_count + 1, "
            "protected_items = protected_items + excluded.protected_items",
            (_day(day), items),
        )
        self._db.commit()

    def usage(self, day: date | None = None) -> dict[str, int]:
        row = self._db.execute(
            "SELECT masking_count, protected_items FROM usage WHERE day = ?", (_day(day),)
        ).fetchone()
        masking_count, protected_items = row if row else (0, 0)
        return {"masking_count": masking_count, "protected_items": protected_items}

    def close(self) -> None:
        self._db.close()


def _day(day: date | None) -> str:
    return (day or date.today()).isoformat()
