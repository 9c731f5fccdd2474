from __future__ import annotations

import json
import sqlite3
import time
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any, Iterator, List

from api.engine.errors import MalformedInputError, StoreUnavailableError
from api.engine.snapshot_v1 import (
    Incident,
    Snapshot,
    incident_from_record,
    incident_to_record,
    parse_snapshot_payload,
    snapshot_to_record,
)
from api.engine.stores import StoreEntry
from api.engine.utils import stable_json_dumps


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS player_baselines (
  player_id TEXT PRIMARY KEY,
  snapshot_json TEXT NOT NULL,
  updated_at REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS player_incidents (
  player_id TEXT PRIMARY KEY,
  incident_json TEXT NOT NULL,
  opened_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_player_baselines_updated_at ON player_baselines(updated_at);
"""


class SqliteProgressDB:
    """Shared connection factory for the baseline and incident tables of one sqlite file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._schema_ready = False

    @contextmanager
    def connect(self, operation: str, player_id: str | None) -> Iterator[sqlite3.Connection]:
        try:
            if not self._schema_ready:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with closing(sqlite3.connect(str(self.db_path))) as con:
                con.row_factory = sqlite3.Row
                if not self._schema_ready:
                    con.executescript(_SCHEMA_SQL)
                    self._schema_ready = True
                with con:
                    yield con
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailableError(operation, player_id, str(exc)) from exc


def _decode_json(raw: Any, operation: str, player_id: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise StoreUnavailableError(operation, player_id, f"unreadable record: {exc}") from exc


class SqliteBaselineStore:
    def __init__(self, db: SqliteProgressDB):
        self._db = db

    def get(self, player_id: str) -> Snapshot | None:
        with self._db.connect("baseline.get", player_id) as con:
            row = con.execute(
                "SELECT snapshot_json FROM player_baselines WHERE player_id = ? LIMIT 1",
                (player_id,),
            ).fetchone()
        if row is None:
            return None
        try:
            return parse_snapshot_payload(_decode_json(row["snapshot_json"], "baseline.get", player_id))
        except MalformedInputError as exc:
            raise StoreUnavailableError("baseline.get", player_id, str(exc)) from exc

    def put(self, player_id: str, snapshot: Snapshot) -> None:
        with self._db.connect("baseline.put", player_id) as con:
            con.execute(
                """
                INSERT INTO player_baselines (player_id, snapshot_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(player_id) DO UPDATE SET
                  snapshot_json = excluded.snapshot_json,
                  updated_at = excluded.updated_at
                """,
                (player_id, stable_json_dumps(snapshot_to_record(snapshot)), time.time()),
            )

    def delete(self, player_id: str) -> bool:
        with self._db.connect("baseline.delete", player_id) as con:
            cursor = con.execute("DELETE FROM player_baselines WHERE player_id = ?", (player_id,))
            return cursor.rowcount > 0

    def list_entries(self) -> List[StoreEntry]:
        with self._db.connect("baseline.list", None) as con:
            rows = con.execute(
                "SELECT player_id, updated_at FROM player_baselines ORDER BY player_id"
            ).fetchall()
        return [StoreEntry(player_id=row["player_id"], updated_at=float(row["updated_at"])) for row in rows]


class SqliteIncidentStore:
    def __init__(self, db: SqliteProgressDB):
        self._db = db

    def get(self, player_id: str) -> Incident | None:
        with self._db.connect("incident.get", player_id) as con:
            row = con.execute(
                "SELECT incident_json FROM player_incidents WHERE player_id = ? LIMIT 1",
                (player_id,),
            ).fetchone()
        if row is None:
            return None
        try:
            return incident_from_record(_decode_json(row["incident_json"], "incident.get", player_id))
        except MalformedInputError as exc:
            raise StoreUnavailableError("incident.get", player_id, str(exc)) from exc

    def put(self, player_id: str, incident: Incident) -> None:
        with self._db.connect("incident.put", player_id) as con:
            con.execute(
                "INSERT OR REPLACE INTO player_incidents (player_id, incident_json, opened_at) VALUES (?, ?, ?)",
                (player_id, stable_json_dumps(incident_to_record(incident)), time.time()),
            )

    def delete(self, player_id: str) -> bool:
        with self._db.connect("incident.delete", player_id) as con:
            cursor = con.execute("DELETE FROM player_incidents WHERE player_id = ?", (player_id,))
            return cursor.rowcount > 0

    def list_player_ids(self) -> List[str]:
        with self._db.connect("incident.list", None) as con:
            rows = con.execute("SELECT player_id FROM player_incidents ORDER BY player_id").fetchall()
        return [row["player_id"] for row in rows]
